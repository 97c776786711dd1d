import pytest

from ascendia.errors import NotFoundError, ValidationFailure
from ascendia.models import CurrentUser, MissionStatus

pytestmark = pytest.mark.asyncio


async def seed_profile(store, user, **fields):
    return await store.upsert_profile(user.id, {"email": user.email, **fields})


async def test_today_creates_missions_once(service, user, store):
    first = await service.today(user)
    second = await service.today(user)

    assert first.date_key == "2026-02-02"
    assert len(first.missions) == 4
    assert len({m.type for m in first.missions}) == 4
    assert all(m.status == MissionStatus.PENDING for m in first.missions)
    assert [m.id for m in second.missions] == [m.id for m in first.missions]
    assert first.profile.last_reconciled_date == "2026-02-01"


async def test_today_uses_profile_timezone(service, user):
    await service.update_profile(user, timezone_name="Pacific/Kiritimati")
    today = await service.today(user)
    assert today.date_key == "2026-02-03"


async def test_completing_every_mission_secures_the_day(service, user, store):
    await seed_profile(
        store,
        user,
        current_streak=2,
        longest_streak=2,
        successful_days=2,
        last_success_date="2026-02-01",
        last_reconciled_date="2026-02-01",
    )
    today = await service.today(user)
    *rest, last = today.missions

    for mission in rest:
        result = await service.complete_mission(user, mission.id)
        assert result.profile.current_streak == 2

    result = await service.complete_mission(user, last.id)
    assert result.profile.current_streak == 3
    assert result.profile.longest_streak == 3
    assert result.profile.successful_days == 3
    assert result.profile.last_success_date == "2026-02-02"
    assert result.profile.total_missions_completed == 4
    assert all(m.status == MissionStatus.COMPLETED for m in result.missions)
    assert all(m.completed_at is not None for m in result.missions)


async def test_completion_is_idempotent(service, user):
    today = await service.today(user)
    mission = today.missions[0]

    first = await service.complete_mission(user, mission.id)
    second = await service.complete_mission(user, mission.id)

    assert first.profile.total_missions_completed == 1
    assert second.profile.total_missions_completed == 1
    assert second.profile.model_dump(exclude={"updated_at"}) == first.profile.model_dump(exclude={"updated_at"})


async def test_secured_day_counts_once(service, user, clock):
    today = await service.today(user)
    for mission in today.missions:
        await service.complete_mission(user, mission.id)
    again = await service.complete_mission(user, today.missions[0].id)
    assert again.profile.successful_days == 1

    # next morning the sweep sees the same day and must not count it again
    clock.set("2026-02-03T09:00:00")
    profile = await service.reconciled_profile(user)
    assert profile.successful_days == 1
    assert profile.current_streak == 1
    assert profile.last_reconciled_date == "2026-02-02"


async def test_level_up_on_fourteenth_successful_day(service, user, store):
    await seed_profile(
        store,
        user,
        current_streak=5,
        longest_streak=5,
        successful_days=13,
        level=2,
        last_success_date="2026-02-01",
        last_reconciled_date="2026-02-01",
    )
    today = await service.today(user)
    for mission in today.missions:
        result = await service.complete_mission(user, mission.id)
    assert result.profile.successful_days == 14
    assert result.profile.level == 3


async def test_missing_or_foreign_mission_is_not_found(service, user):
    with pytest.raises(NotFoundError):
        await service.complete_mission(user, "does-not-exist")

    other = CurrentUser(id="user-2")
    theirs = await service.today(other)
    with pytest.raises(NotFoundError):
        await service.complete_mission(user, theirs.missions[0].id)


async def test_mission_from_closed_day_is_rejected(service, user, store):
    await seed_profile(
        store, user, current_streak=1, longest_streak=1, successful_days=1, last_success_date="2026-01-30"
    )
    yesterday = await service.engine.ensure_missions_for_date(user.id, "2026-02-01", 1.0)

    with pytest.raises(ValidationFailure):
        await service.complete_mission(user, yesterday[0].id)

    profile = await store.get_profile(user.id)
    assert profile.current_streak == 0
    assert profile.total_missions_completed == 0
    mission = await store.get_mission(yesterday[0].id, user.id)
    assert mission.status == MissionStatus.FAILED


async def test_last7_rollup(service, user):
    today = await service.today(user)
    for mission in today.missions[:2]:
        await service.complete_mission(user, mission.id)

    rollup = await service.last7(user)
    assert [d.date_key for d in rollup.days][:2] == ["2026-02-02", "2026-02-01"]
    assert len(rollup.days) == 7
    assert (rollup.days[0].total, rollup.days[0].completed) == (4, 2)
    assert all(d.total == 0 for d in rollup.days[1:])
    assert rollup.totals == {
        "total_missions_completed": 2,
        "current_streak": 0,
        "longest_streak": 0,
        "level": 1,
    }


async def test_update_profile_validates_input(service, user):
    with pytest.raises(ValidationFailure):
        await service.update_profile(user, timezone_name="Nowhere/Land")
    with pytest.raises(ValidationFailure):
        await service.update_profile(user, archetype_id="paper-tiger")

    profile = await service.update_profile(user, timezone_name="+05:30", archetype_id="flame-vanguard")
    assert profile.timezone == "+05:30"
    assert profile.archetype_id == "flame-vanguard"
    assert profile.email == user.email


async def test_archetype_scales_targets(service, user):
    easy = await service.today(CurrentUser(id="calm"))
    await service.update_profile(user, archetype_id="shadow-ascendant")
    hard = await service.today(user)

    assert [m.type for m in hard.missions] == [m.type for m in easy.missions]
    for h, e in zip(hard.missions, easy.missions):
        assert h.target_value >= e.target_value


async def test_delete_account_removes_everything(service, user, store):
    await service.today(user)
    await service.delete_account(user)

    with pytest.raises(NotFoundError):
        await store.get_profile(user.id)
    assert await store.list_missions(user.id, "2026-02-02") == []


async def test_timezone_switch_does_not_skip_unscored_days(service, user, store, clock):
    await service.update_profile(user, timezone_name="Pacific/Kiritimati")
    ahead = await service.today(user)
    assert ahead.date_key == "2026-02-03"
    for mission in ahead.missions:
        await service.complete_mission(user, mission.id)

    await service.update_profile(user, timezone_name="UTC")
    behind = await service.today(user)
    assert behind.date_key == "2026-02-02"

    clock.set("2026-02-05T12:00:00")
    profile = await service.reconciled_profile(user)

    assert profile.last_reconciled_date == "2026-02-04"
    assert profile.successful_days == 1
    assert profile.current_streak == 0
    missed = await store.list_missions(user.id, "2026-02-02")
    assert {m.status for m in missed} == {MissionStatus.FAILED}
    secured = await store.list_missions(user.id, "2026-02-03")
    assert {m.status for m in secured} == {MissionStatus.COMPLETED}


async def test_counters_never_decrease_across_mixed_days(service, user, clock):
    # (day, how many of the day's missions get completed)
    plan = [
        ("2026-02-02", 4),
        ("2026-02-03", 4),
        ("2026-02-04", 2),
        ("2026-02-05", 0),
        ("2026-02-07", 4),
        ("2026-02-08", 1),
        ("2026-02-09", 4),
    ]
    history = []
    for day, completions in plan:
        clock.set(f"{day}T12:00:00")
        today = await service.today(user)
        for mission in today.missions[:completions]:
            await service.complete_mission(user, mission.id)
        # repeat one completion to make sure replays change nothing
        if completions:
            await service.complete_mission(user, today.missions[0].id)
        history.append(await service.reconciled_profile(user))

    clock.set("2026-02-12T12:00:00")
    history.append(await service.reconciled_profile(user))

    for field in ("successful_days", "longest_streak", "total_missions_completed"):
        values = [getattr(p, field) for p in history]
        assert values == sorted(values), field

    final = history[-1]
    assert final.successful_days == 4
    assert final.longest_streak == 2
    assert final.total_missions_completed == 4 + 4 + 2 + 4 + 1 + 4
    assert final.current_streak == 0
    assert final.level == 1
