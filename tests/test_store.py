"""Session store: lifecycle, cell writes, turn completion and owner settings."""
import re
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from idealab.config import BrainwritingRules
from idealab.core.exceptions import (
    DuplicateStart,
    InvalidCellCoordinates,
    InvalidUsageMode,
    NotJoined,
    NotSessionOwner,
    SessionNotFound,
    SheetLocked,
    WrongTurn,
)
from idealab.core.join import JoinCoordinator
from idealab.core.store import SessionStore
from idealab.core.turns import TurnSequencer
from idealab.models import Brainwriting, BrainwritingInput, BrainwritingSheet, BrainwritingUser, UsageScope


async def _team(store, coordinator, db, members):
    """Team session owned by members[0] with the others joined, started."""
    owner = members[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.TEAM, "Team", "Snacks")
    for member in members[1:]:
        await coordinator.join(db, brainwriting.id, member.id)
    sheets = await store.start_session(db, brainwriting.id, owner.id)
    return brainwriting, sheets


async def _count(db, model, *where):
    return await db.scalar(select(func.count()).select_from(model).where(*where))


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_broadcast_locks_sheet_to_owner(db, store, clock, rules, users):
    owner = users[0]
    brainwriting = await store.create_session(
        db, owner.id, UsageScope.XPOST, "Weekend", "Side projects", "Anything goes"
    )

    assert re.fullmatch(r"[0-9a-f]{32}", brainwriting.invite_token)
    assert brainwriting.is_invite_active
    assert not brainwriting.is_results_public

    assert await store.participant_ids(db, brainwriting.id) == [owner.id]
    sheets = await store.sheets(db, brainwriting.id)
    assert len(sheets) == 1
    assert sheets[0].current_user_id == owner.id
    assert sheets[0].lock_expires_at == clock() + rules.lock_ttl

    cells = await store.sheet_inputs(db, sheets[0].id)
    assert [(c.row_index, c.column_index, c.content) for c in cells] == [(0, 0, None), (0, 1, None), (0, 2, None)]


@pytest.mark.asyncio
async def test_create_team_has_no_sheets_until_started(db, store, users):
    brainwriting = await store.create_session(db, users[0].id, "team", "Team", "Snacks")
    assert brainwriting.usage_scope == UsageScope.TEAM
    assert await store.sheets(db, brainwriting.id) == []
    assert await store.participant_ids(db, brainwriting.id) == [users[0].id]


@pytest.mark.asyncio
async def test_create_rejects_unknown_usage_scope(db, store, users):
    with pytest.raises(InvalidUsageMode):
        await store.create_session(db, users[0].id, "broadcast-ish", "T", "Theme")
    assert await _count(db, Brainwriting) == 0


@pytest.mark.asyncio
async def test_invite_tokens_are_unique(db, store, users):
    first = await store.create_session(db, users[0].id, UsageScope.XPOST, "A", "A")
    second = await store.create_session(db, users[0].id, UsageScope.XPOST, "B", "B")
    assert first.invite_token != second.invite_token


# ---------------------------------------------------------------------------
# Start (team)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_start_creates_one_sheet_per_participant(db, store, coordinator, transport, clock, rules, users):
    members = users[:3]
    brainwriting, sheets = await _team(store, coordinator, db, members)

    assert [s.sequence for s in sheets] == [0, 1, 2]
    assert [s.current_user_id for s in sheets] == [m.id for m in members]
    assert all(s.lock_expires_at == clock() + rules.lock_ttl for s in sheets)
    for sheet, member in zip(sheets, members):
        cells = await store.sheet_inputs(db, sheet.id)
        assert {(c.row_index, c.user_id) for c in cells} == {(0, member.id)}
        assert len(cells) == rules.columns

    assert transport.types(f"brainwriting/{brainwriting.id}")[-1] == "BRAINWRITING_STARTED"


@pytest.mark.asyncio
async def test_second_start_is_rejected(db, store, coordinator, users):
    brainwriting, _ = await _team(store, coordinator, db, users[:3])
    bw_id = brainwriting.id
    with pytest.raises(DuplicateStart):
        await store.start_session(db, bw_id, users[1].id)
    assert await _count(db, BrainwritingSheet, BrainwritingSheet.brainwriting_id == bw_id) == 3


@pytest.mark.asyncio
async def test_start_requires_participant(db, store, users):
    brainwriting = await store.create_session(db, users[0].id, UsageScope.TEAM, "Team", "Snacks")
    with pytest.raises(NotJoined):
        await store.start_session(db, brainwriting.id, users[1].id)


@pytest.mark.asyncio
async def test_start_rejected_for_broadcast(db, store, users):
    brainwriting = await store.create_session(db, users[0].id, UsageScope.XPOST, "Post", "Ideas")
    with pytest.raises(InvalidUsageMode):
        await store.start_session(db, brainwriting.id, users[0].id)


@pytest.mark.asyncio
async def test_start_unknown_session(db, store, users):
    with pytest.raises(SessionNotFound):
        await store.start_session(db, 404, users[0].id)


# ---------------------------------------------------------------------------
# Cell writes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upsert_is_last_write_wins(db, store, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]

    await store.upsert_input(db, brainwriting.id, sheet.id, owner.id, 0, 1, "first")
    cell = await store.upsert_input(db, brainwriting.id, sheet.id, owner.id, 0, 1, "  second  ")

    assert cell.content == "second"
    assert await _count(
        db,
        BrainwritingInput,
        BrainwritingInput.brainwriting_sheet_id == sheet.id,
        BrainwritingInput.row_index == 0,
        BrainwritingInput.column_index == 1,
    ) == 1


@pytest.mark.asyncio
async def test_blank_content_is_stored_as_null(db, store, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]

    await store.upsert_input(db, brainwriting.id, sheet.id, owner.id, 0, 0, "idea")
    cell = await store.upsert_input(db, brainwriting.id, sheet.id, owner.id, 0, 0, "   ")
    assert cell.content is None


@pytest.mark.asyncio
@pytest.mark.parametrize("row, col", [(0, 3), (6, 0), (-1, 0), (0, -1)])
async def test_upsert_rejects_cells_outside_grid(db, store, users, row, col):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]
    with pytest.raises(InvalidCellCoordinates):
        await store.upsert_input(db, brainwriting.id, sheet.id, owner.id, row, col, "x")


@pytest.mark.asyncio
async def test_upsert_by_non_participant(db, store, users):
    brainwriting = await store.create_session(db, users[0].id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]
    with pytest.raises(NotJoined):
        await store.upsert_input(db, brainwriting.id, sheet.id, users[1].id, 0, 0, "x")


@pytest.mark.asyncio
async def test_team_upsert_on_someone_elses_sheet(db, store, coordinator, users):
    brainwriting, sheets = await _team(store, coordinator, db, users[:2])
    with pytest.raises(SheetLocked) as excinfo:
        await store.upsert_input(db, brainwriting.id, sheets[0].id, users[1].id, 0, 0, "x")
    assert excinfo.value.held_by == users[0].id


@pytest.mark.asyncio
async def test_team_upsert_on_wrong_row(db, store, coordinator, users):
    brainwriting, sheets = await _team(store, coordinator, db, users[:2])
    with pytest.raises(WrongTurn):
        await store.upsert_input(db, brainwriting.id, sheets[0].id, users[0].id, 1, 0, "x")


@pytest.mark.asyncio
async def test_team_writer_retakes_own_lapsed_lock(db, store, coordinator, clock, rules, users):
    brainwriting, sheets = await _team(store, coordinator, db, users[:2])
    clock.advance(minutes=30)

    await store.upsert_input(db, brainwriting.id, sheets[0].id, users[0].id, 0, 0, "late idea")

    sheet = await store.load_sheet(db, sheets[0].id)
    assert sheet.current_user_id == users[0].id
    assert sheet.lock_expires_at == clock() + rules.lock_ttl


# ---------------------------------------------------------------------------
# Turn completion
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_full_team_rotation(db, store, coordinator, transport, users):
    members = users[:3]
    ids = [m.id for m in members]
    brainwriting, sheets = await _team(store, coordinator, db, members)
    held = []

    for turn in range(len(members)):
        for sheet in sheets:
            current = await store.load_sheet(db, sheet.id)
            writer = current.current_user_id
            held.append((writer, sheet.id))
            await store.upsert_input(db, brainwriting.id, sheet.id, writer, turn, 0, f"idea {turn}")
            outcome = await store.complete_turn(db, sheet.id, writer)
            assert outcome.turn_index == turn + 1

    for sheet in sheets:
        final = await store.load_sheet(db, sheet.id)
        assert final.turn_index == len(members)
        assert final.current_user_id is None
        cells = await store.sheet_inputs(db, sheet.id)
        authors = {c.row_index: c.user_id for c in cells if c.content}
        # Each row written by a different participant, originator first.
        assert sorted(authors.values()) == sorted(ids)
        assert authors[0] == ids[final.sequence]

    # Every participant held every sheet exactly once.
    assert len(held) == len(set(held)) == len(ids) * len(sheets)
    assert set(held) == {(user_id, sheet.id) for user_id in ids for sheet in sheets}

    detail = await store.get_detail(db, brainwriting.id, members[0].id)
    assert detail.is_complete
    assert all(s.is_complete for s in detail.sheets)
    assert transport.types().count("SHEET_ROTATED") == len(members) ** 2


@pytest.mark.asyncio
async def test_team_rotation_with_capacity_above_row_budget(db, locks, publisher, users):
    rules = BrainwritingRules(max_participants=8, row_budget=6, columns=3, lock_ttl=timedelta(minutes=10))
    store = SessionStore(rules, locks, TurnSequencer(rules, locks), publisher)
    brainwriting, sheets = await _team(store, JoinCoordinator(store), db, users[:8])
    bw_id, sheet_id = brainwriting.id, sheets[0].id
    ids = [u.id for u in users[:8]]

    for turn in range(8):
        writer = (await store.load_sheet(db, sheet_id)).current_user_id
        assert writer == ids[turn]
        await store.upsert_input(db, bw_id, sheet_id, writer, turn, 0, f"idea {turn}")
        await store.complete_turn(db, sheet_id, writer)

    final = await store.load_sheet(db, sheet_id)
    assert final.turn_index == 8
    assert {c.row_index for c in await store.sheet_inputs(db, sheet_id) if c.content} == set(range(8))

    with pytest.raises(InvalidCellCoordinates):
        await store.upsert_input(db, bw_id, sheet_id, ids[0], 8, 0, "past the last row")


@pytest.mark.asyncio
async def test_rotation_hands_lock_to_next_user_with_empty_row(db, store, coordinator, clock, rules, users):
    brainwriting, sheets = await _team(store, coordinator, db, users[:2])

    outcome = await store.complete_turn(db, sheets[0].id, users[0].id)

    assert outcome.next_user_id == users[1].id
    assert not outcome.is_sheet_complete
    sheet = await store.load_sheet(db, sheets[0].id)
    assert sheet.current_user_id == users[1].id
    assert sheet.lock_expires_at == clock() + rules.lock_ttl
    row1 = [c for c in await store.sheet_inputs(db, sheet.id) if c.row_index == 1]
    assert [(c.user_id, c.content) for c in row1] == [(users[1].id, None)] * rules.columns


@pytest.mark.asyncio
async def test_single_participant_team_completes_after_one_pass(db, store, transport, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.TEAM, "Solo", "Me")
    sheets = await store.start_session(db, brainwriting.id, owner.id)

    outcome = await store.complete_turn(db, sheets[0].id, owner.id)

    assert outcome.is_sheet_complete
    assert outcome.next_user_id is None
    detail = await store.get_detail(db, brainwriting.id, owner.id)
    assert detail.is_complete


@pytest.mark.asyncio
async def test_complete_turn_out_of_turn(db, store, coordinator, users):
    _, sheets = await _team(store, coordinator, db, users[:2])
    sheet_id = sheets[0].id
    with pytest.raises(SheetLocked):
        await store.complete_turn(db, sheet_id, users[1].id)

    sheet = await store.load_sheet(db, sheet_id)
    assert sheet.turn_index == 0


@pytest.mark.asyncio
async def test_complete_turn_on_finished_sheet(db, store, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.TEAM, "Solo", "Me")
    sheets = await store.start_session(db, brainwriting.id, owner.id)
    await store.complete_turn(db, sheets[0].id, owner.id)

    with pytest.raises(WrongTurn):
        await store.complete_turn(db, sheets[0].id, owner.id)


@pytest.mark.asyncio
async def test_broadcast_complete_releases_lock_without_event(db, store, transport, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]

    outcome = await store.complete_turn(db, sheet.id, owner.id)
    assert not outcome.is_sheet_complete
    assert (await store.load_sheet(db, sheet.id)).current_user_id is None
    assert "SHEET_ROTATED" not in transport.types()

    # Idempotent once released
    await store.complete_turn(db, sheet.id, owner.id)


@pytest.mark.asyncio
async def test_broadcast_handoff_between_two_users(db, store, coordinator, users):
    alice, bob = users[0], users[1]
    brainwriting = await store.create_session(db, alice.id, UsageScope.XPOST, "Post", "Ideas")
    bw_id = brainwriting.id
    sheet_id = (await store.sheets(db, bw_id))[0].id

    with pytest.raises(SheetLocked):
        await coordinator.join(db, bw_id, bob.id)

    await store.upsert_input(db, bw_id, sheet_id, alice.id, 0, 0, "alice idea")
    await store.complete_turn(db, sheet_id, alice.id)

    joined = await coordinator.join(db, bw_id, bob.id)
    assert joined.row_index == 1
    sheet = await store.load_sheet(db, sheet_id)
    assert sheet.current_user_id == bob.id
    await store.upsert_input(db, bw_id, sheet_id, bob.id, 1, 2, "bob idea")

    with pytest.raises(SheetLocked):
        await store.upsert_input(db, bw_id, sheet_id, alice.id, 0, 1, "too late")
    with pytest.raises(WrongTurn):
        await store.upsert_input(db, bw_id, sheet_id, bob.id, 0, 0, "not my row")

    cells = {(c.row_index, c.column_index): (c.user_id, c.content) for c in await store.sheet_inputs(db, sheet_id)}
    assert cells[(0, 0)] == (alice.id, "alice idea")
    assert cells[(0, 1)] == (alice.id, None)
    assert cells[(1, 2)] == (bob.id, "bob idea")


@pytest.mark.asyncio
async def test_broadcast_write_after_release(db, store, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]
    await store.complete_turn(db, sheet.id, owner.id)

    with pytest.raises(WrongTurn):
        await store.upsert_input(db, brainwriting.id, sheet.id, owner.id, 0, 0, "x")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_detail_annotations(db, store, coordinator, users):
    brainwriting, sheets = await _team(store, coordinator, db, users[:3])

    detail = await store.get_detail(db, brainwriting.id, users[1].id)

    assert detail.is_joined and not detail.is_owner
    assert detail.is_started and not detail.is_complete
    assert [p.user_id for p in detail.participants] == [u.id for u in users[:3]]
    assert detail.participants[0].is_owner
    assert detail.participants[1].name == users[1].name

    by_seq = {s.sequence: s for s in detail.sheets}
    assert by_seq[1].held_by_me and by_seq[1].is_my_turn
    assert by_seq[1].my_row == 0
    assert by_seq[0].is_locked and not by_seq[0].held_by_me
    assert by_seq[0].my_row == 1
    assert by_seq[2].my_row == 2


@pytest.mark.asyncio
async def test_detail_hidden_from_strangers_unless_public(db, store, users):
    owner, stranger = users[0], users[5]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    bw_id = brainwriting.id

    with pytest.raises(NotJoined):
        await store.get_detail(db, bw_id, stranger.id)

    await store.set_results_public(db, bw_id, owner.id, True)
    detail = await store.get_detail(db, bw_id, stranger.id)
    assert not detail.is_joined
    assert detail.sheets[0].my_row is None


@pytest.mark.asyncio
async def test_sheet_detail_requires_participation(db, store, users):
    owner = users[0]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]

    detail = await store.get_sheet_detail(db, sheet.id, owner.id)
    assert detail.sheet.held_by_me
    assert detail.sheet.my_row == 0
    assert len(detail.sheet.inputs) == 3

    with pytest.raises(NotJoined):
        await store.get_sheet_detail(db, sheet.id, users[1].id)


@pytest.mark.asyncio
async def test_list_sheets_clears_expired_locks(db, store, coordinator, clock, users):
    brainwriting, _ = await _team(store, coordinator, db, users[:2])
    clock.advance(minutes=11)

    listed = await store.list_sheets(db, brainwriting.id, users[0].id)

    assert [(s.current_user_id, s.lock_expires_at, s.is_locked) for s in listed] == [(None, None, False)] * 2
    assert all(s.current_user_id is None for s in await store.sheets(db, brainwriting.id))


@pytest.mark.asyncio
async def test_list_participants_drops_abandoned_joiner(db, store, coordinator, clock, users):
    owner, idle = users[0], users[1]
    brainwriting = await store.create_session(db, owner.id, UsageScope.XPOST, "Post", "Ideas")
    sheet = (await store.sheets(db, brainwriting.id))[0]
    await store.complete_turn(db, sheet.id, owner.id)
    await coordinator.join(db, brainwriting.id, idle.id)
    assert [p.user_id for p in await store.list_participants(db, brainwriting.id, owner.id)] == [owner.id, idle.id]

    clock.advance(minutes=11)
    listed = await store.list_participants(db, brainwriting.id, owner.id)

    assert [p.user_id for p in listed] == [owner.id]


@pytest.mark.asyncio
async def test_list_sessions_newest_first(db, store, clock, users):
    first = await store.create_session(db, users[0].id, UsageScope.TEAM, "First", "A")
    clock.advance(minutes=1)
    second = await store.create_session(db, users[0].id, UsageScope.XPOST, "Second", "B")
    await store.create_session(db, users[1].id, UsageScope.TEAM, "Other", "C")

    listed = await store.list_sessions(db, users[0].id)
    assert [b.id for b in listed] == [second.id, first.id]


@pytest.mark.asyncio
async def test_get_by_invite_token(db, store, users):
    brainwriting = await store.create_session(db, users[0].id, UsageScope.XPOST, "Post", "Ideas")
    found = await store.get_by_invite_token(db, brainwriting.invite_token)
    assert found.id == brainwriting.id

    with pytest.raises(SessionNotFound) as excinfo:
        await store.get_by_invite_token(db, "f" * 32)
    assert excinfo.value.details == {"invite_token": "f" * 32}
    assert "invite" in excinfo.value.message


# ---------------------------------------------------------------------------
# Owner settings
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_session_owner_only(db, store, users):
    brainwriting = await store.create_session(db, users[0].id, UsageScope.TEAM, "Old", "Theme")
    bw_id = brainwriting.id

    updated = await store.update_session(db, bw_id, users[0].id, title="New", description="More")
    assert (updated.title, updated.theme_name, updated.description) == ("New", "Theme", "More")

    with pytest.raises(NotSessionOwner):
        await store.update_session(db, bw_id, users[1].id, title="Hijack")
    with pytest.raises(InvalidUsageMode):
        await store.update_session(db, bw_id, users[0].id, usage_scope="xpost")
    assert (await store.load_session(db, bw_id)).title == "New"


@pytest.mark.asyncio
async def test_flag_toggles(db, store, users):
    bw_id = (await store.create_session(db, users[0].id, UsageScope.XPOST, "Post", "Ideas")).id

    assert not (await store.set_invite_active(db, bw_id, users[0].id, False)).is_invite_active
    assert (await store.set_results_public(db, bw_id, users[0].id, True)).is_results_public

    with pytest.raises(NotSessionOwner):
        await store.set_invite_active(db, bw_id, users[1].id, True)
    assert not (await store.load_session(db, bw_id)).is_invite_active


@pytest.mark.asyncio
async def test_delete_session_cascades(db, store, coordinator, users):
    brainwriting, _ = await _team(store, coordinator, db, users[:3])
    bw_id = brainwriting.id

    with pytest.raises(NotSessionOwner):
        await store.delete_session(db, bw_id, users[1].id)

    await store.delete_session(db, bw_id, users[0].id)

    assert await _count(db, Brainwriting) == 0
    assert await _count(db, BrainwritingUser) == 0
    assert await _count(db, BrainwritingSheet) == 0
    assert await _count(db, BrainwritingInput) == 0
