import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import add_section, add_students


def _payload(catalog, name="STEM-A", strand="stem") -> dict:
    return {
        "section_name": name,
        "grade_id": str(catalog["g11"]),
        "track_id": str(catalog["acad"]),
        "strand_id": str(catalog[strand]) if strand else None,
    }


@pytest.mark.asyncio
async def test_create_section_needs_active_year(client: AsyncClient, catalog) -> None:
    response = await client.post("/api/v1/sections", json=_payload(catalog))
    assert response.status_code == 409
    assert response.json()["detail"] == "No active school year found."


@pytest.mark.asyncio
async def test_create_section(client: AsyncClient, catalog, active_year) -> None:
    response = await client.post("/api/v1/sections", json=_payload(catalog))
    assert response.status_code == 201
    data = response.json()
    assert data["sy_id"] == str(active_year.id)
    assert data["capacity"] == 40
    assert data["total"] == 0
    assert data["is_archived"] is False


@pytest.mark.asyncio
async def test_create_duplicate_section(client: AsyncClient, catalog, active_year) -> None:
    await client.post("/api/v1/sections", json=_payload(catalog))
    response = await client.post("/api/v1/sections", json=_payload(catalog))
    assert response.status_code == 409
    assert response.json()["detail"].startswith("A section with the same School Year")


@pytest.mark.asyncio
async def test_create_section_strand_from_other_track(client: AsyncClient, catalog, active_year) -> None:
    response = await client.post("/api/v1/sections", json=_payload(catalog, strand="ict"))
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["Unclassified", " unclassified "])
async def test_unclassified_name_is_reserved(client: AsyncClient, catalog, active_year, name: str) -> None:
    response = await client.post("/api/v1/sections", json=_payload(catalog, name=name))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_ensure_unclassified_section_is_idempotent(client: AsyncClient, active_year) -> None:
    first = await client.post("/api/v1/sections/unclassified")
    second = await client.post("/api/v1/sections/unclassified")
    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["section_name"] == "Unclassified"


@pytest.mark.asyncio
async def test_list_sections_hides_unclassified_and_archived(
    client: AsyncClient, db_session: AsyncSession, catalog, active_year, unclassified
) -> None:
    key = dict(grade_id=catalog["g11"], track_id=catalog["acad"], strand_id=catalog["stem"])
    a = await add_section(db_session, active_year.id, "STEM-A", **key)
    await add_section(db_session, active_year.id, "STEM-OLD", is_archived=True, **key)
    await add_students(db_session, active_year.id, 2, prefix="A", section_id=a.id, gender="Female", **key)
    await add_students(db_session, active_year.id, 1, prefix="P", section_id=a.id, status="Pending", **key)

    active = (await client.get("/api/v1/sections")).json()
    assert [s["section_name"] for s in active] == ["STEM-A"]
    assert active[0]["total"] == 2
    assert active[0]["female"] == 2

    archived = (await client.get("/api/v1/sections", params={"tab": "archived"})).json()
    assert [s["section_name"] for s in archived] == ["STEM-OLD"]

    everything = (
        await client.get("/api/v1/sections", params={"tab": "all", "include_unclassified": "true"})
    ).json()
    assert sorted(s["section_name"] for s in everything) == ["STEM-A", "STEM-OLD", "Unclassified"]


@pytest.mark.asyncio
async def test_archive_and_restore_section(client: AsyncClient, catalog, active_year) -> None:
    created = (await client.post("/api/v1/sections", json=_payload(catalog))).json()

    response = await client.post(f"/api/v1/sections/{created['id']}/archive", json={"is_archived": True})
    assert response.status_code == 200
    assert response.json()["is_archived"] is True

    response = await client.post(f"/api/v1/sections/{created['id']}/archive", json={"is_archived": False})
    assert response.json()["is_archived"] is False


@pytest.mark.asyncio
async def test_unclassified_section_cannot_be_changed(client: AsyncClient, unclassified) -> None:
    response = await client.post(f"/api/v1/sections/{unclassified.id}/archive", json={"is_archived": True})
    assert response.status_code == 400
    response = await client.put(f"/api/v1/sections/{unclassified.id}", json={"section_name": "Overflow"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_section_clear_strand(client: AsyncClient, catalog, active_year) -> None:
    created = (await client.post("/api/v1/sections", json=_payload(catalog))).json()
    response = await client.put(
        f"/api/v1/sections/{created['id']}",
        json={"section_name": "ACAD-A", "clear_strand": True},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["section_name"] == "ACAD-A"
    assert data["strand_id"] is None


@pytest.mark.asyncio
async def test_get_missing_section(client: AsyncClient) -> None:
    response = await client.get("/api/v1/sections/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_key_change_rejected_while_section_has_students(
    client: AsyncClient, db_session: AsyncSession, catalog, active_year, unclassified
) -> None:
    key = dict(grade_id=catalog["g11"], track_id=catalog["acad"], strand_id=catalog["stem"])
    sec = await add_section(db_session, active_year.id, "STEM-A", **key)
    await add_students(db_session, active_year.id, 1, prefix="S", section_id=sec.id, **key)
    sec_id = sec.id

    response = await client.put(f"/api/v1/sections/{sec_id}", json={"grade_id": str(catalog["g12"])})
    assert response.status_code == 409

    response = await client.put(f"/api/v1/sections/{sec_id}", json={"clear_strand": True})
    assert response.status_code == 409

    response = await client.get(f"/api/v1/sections/{sec_id}")
    assert response.json()["grade_id"] == str(catalog["g11"])
    assert response.json()["strand_id"] == str(catalog["stem"])

    response = await client.put(f"/api/v1/sections/{sec_id}", json={"section_name": "STEM-Alpha"})
    assert response.status_code == 200
    assert response.json()["section_name"] == "STEM-Alpha"
