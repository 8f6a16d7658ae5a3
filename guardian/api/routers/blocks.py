"""
/users/{owner_id}/blocks — manage the block list and check URLs against it.
/users/{owner_id}/unlocks — inspect and revoke temporary unlocks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import (
    BlockCheckOut,
    BlockEntryIn,
    BlockEntryOut,
    BlockStatsOut,
    CategoryIn,
    ImportOut,
    UnlockOut,
)

router = APIRouter(prefix="/users/{owner_id}", tags=["blocks"])


def _get_services(owner_id: str, request: Request):
    return request.app.state.registry.for_owner(owner_id)


# ── Block list ──────────────────────────────────────────────────────────────

@router.get("/blocks", response_model=List[BlockEntryOut])
def list_blocks(
    search: Optional[str] = Query(default=None, description="Substring of URL or category"),
    category: Optional[str] = Query(default=None, description="Exact category filter"),
    uncategorized: bool = Query(default=False, description="Only entries without a category"),
    services=Depends(_get_services),
):
    engine = services.block_list
    if search:
        entries = engine.search(search)
    elif category or uncategorized:
        entries = engine.filter_by_category(None if uncategorized else category)
    else:
        entries = engine.entries()
    return [BlockEntryOut.from_entry(e) for e in entries]


@router.post("/blocks", response_model=BlockEntryOut, status_code=201)
def add_block(body: BlockEntryIn, services=Depends(_get_services)):
    entry = services.block_list.add(
        body.url,
        is_permanent=body.is_permanent,
        category=body.category,
        pattern=body.pattern,
    )
    return BlockEntryOut.from_entry(entry)


@router.delete("/blocks")
def clear_blocks(services=Depends(_get_services)):
    services.block_list.clear()
    return {"status": "cleared"}


@router.get("/blocks/check", response_model=BlockCheckOut)
def check_url(
    url: str = Query(..., description="URL to test"),
    services=Depends(_get_services),
):
    """Is *url* blocked right now for this owner?"""
    return BlockCheckOut.from_check(url, services.block_list.is_blocked(url))


@router.get("/blocks/stats", response_model=BlockStatsOut)
def block_stats(services=Depends(_get_services)):
    return BlockStatsOut.from_stats(services.block_list.stats())


@router.get("/blocks/categories", response_model=List[str])
def block_categories(services=Depends(_get_services)):
    return services.block_list.categories()


@router.get("/blocks/attempts", response_model=Dict[str, int])
def blocked_attempts(services=Depends(_get_services)):
    """How often each URL has been blocked since the service started."""
    return services.block_list.blocked_attempts()


@router.post("/blocks/import", response_model=ImportOut)
def import_blocks(items: List[Dict[str, Any]], services=Depends(_get_services)):
    result = services.block_list.import_entries(items)
    return ImportOut(imported=result.imported, errors=result.errors)


@router.get("/blocks/{entry_id}", response_model=BlockEntryOut)
def get_block(entry_id: str, services=Depends(_get_services)):
    return BlockEntryOut.from_entry(services.block_list.get(entry_id))


@router.delete("/blocks/{entry_id}")
def remove_block(entry_id: str, services=Depends(_get_services)):
    services.block_list.remove(entry_id)
    return {"status": "removed"}


@router.post("/blocks/{entry_id}/toggle-permanent", response_model=BlockEntryOut)
def toggle_permanent(entry_id: str, services=Depends(_get_services)):
    return BlockEntryOut.from_entry(services.block_list.toggle_permanent(entry_id))


@router.put("/blocks/{entry_id}/category", response_model=BlockEntryOut)
def update_category(entry_id: str, body: CategoryIn, services=Depends(_get_services)):
    return BlockEntryOut.from_entry(services.block_list.update_category(entry_id, body.category))


@router.post("/blocks/{entry_id}/touch", response_model=BlockEntryOut)
def touch_block(entry_id: str, services=Depends(_get_services)):
    return BlockEntryOut.from_entry(services.block_list.touch(entry_id))


# ── Temporary unlocks ───────────────────────────────────────────────────────

@router.get("/unlocks", response_model=List[UnlockOut])
def list_unlocks(services=Depends(_get_services)):
    return [UnlockOut(url=u.url, unlock_until=u.unlock_until) for u in services.unlocks.list_active()]


@router.delete("/unlocks")
def revoke_unlock(
    url: str = Query(..., description="URL whose unlock should end now"),
    services=Depends(_get_services),
):
    revoked = services.unlocks.revoke(url)
    return {"status": "revoked" if revoked else "not_unlocked"}
