"""Tests for the catalog query engine: filters, visibility and keyset pagination."""

import pytest

from src.atlas.config import settings
from src.atlas.crud.catalog import query_catalog, sort_value
from src.atlas.crud.zone import delete_zone_hard
from src.atlas.crud.zone_permission import set_grant
from src.atlas.models.zones import ZoneStatus
from src.atlas.schemas.catalog import CatalogQuery
from src.atlas.schemas.permission import GrantWrite
from src.atlas.utils.errors import InvalidCursor, InvalidGeometry
from src.atlas.utils.permissions import authorize
from src.atlas.utils.workflow import transition_zone
from tests.conftest import square_at


async def _collect(db, user, **params):
    """Walk every page and return the zones in the order served."""
    seen = []
    cursor = None
    while True:
        page = await query_catalog(db, user, CatalogQuery(cursor=cursor, **params))
        seen.extend(page.items)
        if page.next_cursor is None:
            return seen
        assert len(page.items) == params.get("limit")
        cursor = page.next_cursor


def _in_order(rows, sort: str, order: str) -> bool:
    for a, b in zip(rows, rows[1:]):
        va, vb = sort_value(a, sort), sort_value(b, sort)
        if va == vb:
            if not a.zone_id < b.zone_id:
                return False
        elif (va > vb) if order == "asc" else (va < vb):
            return False
    return True


@pytest.fixture
async def fleet(make_zone, db):
    """Eight zones owned by u1 with duplicate names/areas to exercise tie-breaks."""
    specs = [
        ("delta", 0.0, 1.0),
        ("alpha", 2.0, 2.0),
        ("charlie", 4.0, 1.0),
        ("alpha", 6.0, 0.5),
        ("echo", 8.0, 1.0),
        ("bravo", 10.0, 2.0),
        ("alpha", 12.0, 1.0),
        ("foxtrot", 14.0, 0.5),
    ]
    zones = []
    for i, (name, lon, size) in enumerate(specs):
        zone = await make_zone(name=name, boundary=square_at(lon, 0.0, size), tags=[f"t{i % 3}"])
        zones.append(zone)
    await transition_zone(db, zones[1].zone_id, "published", "u1")
    await transition_zone(db, zones[4].zone_id, "published", "u1")
    return zones


# =====================================================================
# Pagination
# =====================================================================


class TestPagination:
    @pytest.mark.parametrize("sort", ["name", "created_at", "updated_at", "area", "status"])
    @pytest.mark.parametrize("order", ["asc", "desc"])
    async def test_pages_cover_everything_once(self, fleet, db, users, sort: str, order: str) -> None:
        paged = await _collect(db, users["u1"], sort=sort, order=order, limit=3)
        full = (await query_catalog(db, users["u1"], CatalogQuery(sort=sort, order=order, limit=100))).items

        assert [z.zone_id for z in paged] == [z.zone_id for z in full]
        assert sorted(z.zone_id for z in paged) == sorted(z.zone_id for z in fleet)
        assert _in_order(full, sort, order)

    async def test_last_page_has_no_cursor(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(limit=len(fleet)))
        assert len(page.items) == len(fleet)
        assert page.next_cursor is None

    async def test_limit_capped(self, fleet, db, users, monkeypatch) -> None:
        monkeypatch.setattr(settings, "CATALOG_MAX_LIMIT", 2)
        page = await query_catalog(db, users["u1"], CatalogQuery(limit=50))
        assert len(page.items) == 2
        assert page.next_cursor is not None

    async def test_small_scan_batches(self, fleet, db, users, monkeypatch) -> None:
        # u2 only holds grants on the two published zones, spread across the fleet
        for z in fleet:
            if z.status == "published":
                await set_grant(db, z.zone_id, "u2", GrantWrite(view=True), "u1")
        monkeypatch.setattr(settings, "CATALOG_SCAN_BATCH", 1)
        paged = await _collect(db, users["u2"], limit=1)
        assert len(paged) == 2

    async def test_writes_between_pages(self, make_zone, db, users) -> None:
        zones = {name: await make_zone(name=name) for name in ("b", "d", "f", "h", "j")}
        first = await query_catalog(db, users["u1"], CatalogQuery(sort="name", limit=2))
        seen = [z.name for z in first.items]
        assert seen == ["b", "d"]

        await make_zone(name="a")
        await make_zone(name="g")
        assert await delete_zone_hard(db, zones["b"].zone_id) is True

        cursor = first.next_cursor
        while cursor is not None:
            page = await query_catalog(db, users["u1"], CatalogQuery(sort="name", limit=2, cursor=cursor))
            seen.extend(z.name for z in page.items)
            cursor = page.next_cursor
        assert seen == ["b", "d", "f", "g", "h", "j"]

    async def test_cursor_bound_to_sort(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(sort="name", limit=2))
        with pytest.raises(InvalidCursor, match="sort"):
            await query_catalog(db, users["u1"], CatalogQuery(sort="area", limit=2, cursor=page.next_cursor))

    async def test_cursor_bound_to_filters(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(limit=2))
        with pytest.raises(InvalidCursor, match="filters"):
            await query_catalog(db, users["u1"], CatalogQuery(limit=2, text="alpha", cursor=page.next_cursor))

    async def test_garbage_cursor(self, db, users) -> None:
        with pytest.raises(InvalidCursor):
            await query_catalog(db, users["u1"], CatalogQuery(cursor="not-a-cursor"))


# =====================================================================
# Filters
# =====================================================================


class TestFilters:
    async def test_deleted_listed_without_status_filter(self, fleet, db, users) -> None:
        await transition_zone(db, fleet[0].zone_id, "deleted", "u1")
        await authorize(db, users["u1"], fleet[0].zone_id, "view")
        ids = {z.zone_id for z in (await query_catalog(db, users["u1"], CatalogQuery(limit=100))).items}
        assert fleet[0].zone_id in ids
        assert len(ids) == len(fleet)

        only_deleted = await query_catalog(
            db, users["u1"], CatalogQuery(statuses=[ZoneStatus.DELETED], limit=100)
        )
        assert [z.zone_id for z in only_deleted.items] == [fleet[0].zone_id]

    async def test_status_filter(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(statuses=["published"], limit=100))
        assert {z.zone_id for z in page.items} == {fleet[1].zone_id, fleet[4].zone_id}

    async def test_text_matches_name_case_insensitively(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(text="ALPH", limit=100))
        assert len(page.items) == 3
        assert all(z.name == "alpha" for z in page.items)

    async def test_text_treats_wildcards_literally(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(text="%", limit=100))
        assert page.items == []

    async def test_tag_filter(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(tags=["t0"], limit=100))
        assert {z.zone_id for z in page.items} == {fleet[0].zone_id, fleet[3].zone_id, fleet[6].zone_id}

    async def test_owner_filter(self, fleet, make_zone, db, users) -> None:
        other = await make_zone(owner_id="u2", name="theirs", is_public=True)
        await transition_zone(db, other.zone_id, "published", "u2")
        page = await query_catalog(db, users["admin"], CatalogQuery(owner_id="u2", limit=100))
        assert [z.zone_id for z in page.items] == [other.zone_id]

    async def test_bbox_filter(self, fleet, db, users) -> None:
        page = await query_catalog(db, users["u1"], CatalogQuery(bbox=(4.2, -1.0, 4.8, 1.0), limit=100))
        assert [z.zone_id for z in page.items] == [fleet[2].zone_id]

    async def test_exact_intersection_applied_after_bbox(self, make_zone, db, users) -> None:
        triangle = await make_zone(name="tri", boundary=[[20.0, 20.0], [30.0, 20.0], [20.0, 30.0]])
        hit = await query_catalog(db, users["u1"], CatalogQuery(bbox=(21.0, 21.0, 22.0, 22.0)))
        miss = await query_catalog(db, users["u1"], CatalogQuery(bbox=(28.0, 28.0, 29.0, 29.0)))
        assert [z.zone_id for z in hit.items] == [triangle.zone_id]
        assert miss.items == []

    async def test_intersects_polygon(self, fleet, db, users) -> None:
        region = [[8.5, 0.5], [11.0, 0.5], [11.0, 3.0]]
        page = await query_catalog(db, users["u1"], CatalogQuery(intersects=region, limit=100))
        assert {z.zone_id for z in page.items} == {fleet[4].zone_id, fleet[5].zone_id}

    async def test_invalid_intersects_polygon(self, db, users) -> None:
        with pytest.raises(InvalidGeometry):
            await query_catalog(db, users["u1"], CatalogQuery(intersects=[[0, 0], [1, 1]]))


# =====================================================================
# Visibility
# =====================================================================


class TestVisibility:
    async def test_stranger_sees_only_public_published(self, make_zone, db, users) -> None:
        await make_zone(name="private")
        await make_zone(name="draft", is_public=True)
        shown = await make_zone(name="shown", is_public=True)
        await transition_zone(db, shown.zone_id, "published", "u1")

        page = await query_catalog(db, users["u2"], CatalogQuery(limit=100))
        assert [z.zone_id for z in page.items] == [shown.zone_id]

    async def test_grant_reveals_private_zone(self, make_zone, db, users) -> None:
        private = await make_zone(name="private")
        await set_grant(db, private.zone_id, "u2", GrantWrite(view=True), "u1")
        page = await query_catalog(db, users["u2"], CatalogQuery(limit=100))
        assert [z.zone_id for z in page.items] == [private.zone_id]

    async def test_grant_without_view_hides_public_zone(self, make_zone, db, users) -> None:
        shown = await make_zone(name="shown", is_public=True)
        await transition_zone(db, shown.zone_id, "published", "u1")
        await set_grant(db, shown.zone_id, "u2", GrantWrite(edit=True), "u1")
        page = await query_catalog(db, users["u2"], CatalogQuery(limit=100))
        assert page.items == []

    async def test_admin_sees_everything(self, fleet, make_zone, db, users) -> None:
        await make_zone(owner_id="u3", name="zz")
        page = await query_catalog(db, users["admin"], CatalogQuery(limit=100))
        assert len(page.items) == len(fleet) + 1
