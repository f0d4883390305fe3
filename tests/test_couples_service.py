from datetime import date, timedelta

import pytest

from factories import make_household, make_interaction, make_property, make_user
from homematch.models import InteractionType, ResolutionType
from homematch.services.couples import CouplesService, activity_streak


@pytest.fixture
async def couple(db):
    household = await make_household(db)
    alice = await make_user(db, household=household, display_name="Alice")
    bob = await make_user(db, household=household, display_name="Bob")
    return household, alice, bob


@pytest.mark.asyncio
async def test_mutual_likes_is_intersection_of_member_likes(db, couple):
    _, alice, bob = couple
    both = await make_property(db)
    only_alice = await make_property(db)
    bob_dislikes = await make_property(db)

    await make_interaction(db, alice, both, ago=timedelta(hours=2))
    await make_interaction(db, bob, both, ago=timedelta(hours=1))
    await make_interaction(db, alice, only_alice)
    await make_interaction(db, alice, bob_dislikes)
    await make_interaction(db, bob, bob_dislikes, InteractionType.dislike)

    likes = await CouplesService(db).get_mutual_likes(alice.id)

    assert [ml.property_id for ml in likes] == [both.id]
    assert likes[0].liked_by_count == 2
    assert set(likes[0].user_ids) == {alice.id, bob.id}
    assert likes[0].first_liked_at < likes[0].last_liked_at


@pytest.mark.asyncio
async def test_three_member_household_needs_everyone(db, couple):
    household, alice, bob = couple
    carol = await make_user(db, household=household, display_name="Carol")
    prop = await make_property(db)
    await make_interaction(db, alice, prop)
    await make_interaction(db, bob, prop)

    service = CouplesService(db)
    assert await service.get_mutual_likes(alice.id) == []

    await make_interaction(db, carol, prop)
    assert [ml.property_id for ml in await service.get_mutual_likes(alice.id)] == [prop.id]


@pytest.mark.asyncio
async def test_repeat_likes_from_one_member_are_not_mutual(db, couple):
    _, alice, bob = couple
    prop = await make_property(db)
    await make_interaction(db, alice, prop, ago=timedelta(days=3))
    await make_interaction(db, alice, prop)

    service = CouplesService(db)
    assert await service.get_mutual_likes(alice.id) == []

    await make_interaction(db, bob, prop, ago=timedelta(days=1))
    (like,) = await service.get_mutual_likes(bob.id)
    assert like.liked_by_count == 2
    assert like.user_ids == sorted([alice.id, bob.id], key=str)
    assert like.last_liked_at - like.first_liked_at > timedelta(days=2)


@pytest.mark.asyncio
async def test_no_mutual_likes_without_partner(db):
    household = await make_household(db)
    solo = await make_user(db, household=household)
    loner = await make_user(db)
    prop = await make_property(db)
    await make_interaction(db, solo, prop)
    await make_interaction(db, loner, prop)

    service = CouplesService(db)
    assert await service.get_mutual_likes(solo.id) == []
    assert await service.get_mutual_likes(loner.id) == []


@pytest.mark.asyncio
async def test_mutual_likes_newest_first_with_properties(db, couple):
    _, alice, bob = couple
    older = await make_property(db, address="1 Old Rd")
    newer = await make_property(db, address="2 New Rd")
    for prop, hours in ((older, 5), (newer, 1)):
        await make_interaction(db, alice, prop, ago=timedelta(hours=hours))
        await make_interaction(db, bob, prop, ago=timedelta(hours=hours))

    likes = await CouplesService(db).get_mutual_likes(bob.id, include_properties=True)

    assert [ml.property_id for ml in likes] == [newer.id, older.id]
    assert likes[0].property.address == "2 New Rd"


@pytest.mark.asyncio
async def test_household_activity_flags_mutual_likes(db, couple):
    _, alice, bob = couple
    prop = await make_property(db)
    other = await make_property(db)
    await make_interaction(db, alice, prop, ago=timedelta(minutes=3))
    await make_interaction(db, bob, prop, ago=timedelta(minutes=2))
    await make_interaction(db, bob, other, InteractionType.view, ago=timedelta(minutes=1))

    activity = await CouplesService(db).get_household_activity(alice.id, limit=10, offset=0)

    assert [a.property_id for a in activity] == [other.id, prop.id, prop.id]
    assert [a.is_mutual for a in activity] == [False, True, True]
    assert activity[0].user_display_name == "Bob"

    page = await CouplesService(db).get_household_activity(alice.id, limit=1, offset=1)
    assert len(page) == 1
    assert page[0].user_id == bob.id


@pytest.mark.asyncio
async def test_household_stats(db, couple):
    _, alice, bob = couple
    prop = await make_property(db)
    await make_interaction(db, alice, prop, ago=timedelta(days=1))
    await make_interaction(db, bob, prop)

    stats = await CouplesService(db).get_household_stats(alice.id)

    assert stats.total_mutual_likes == 1
    assert stats.total_household_likes == 2
    assert stats.activity_streak_days >= 1
    assert stats.last_mutual_like_at is not None


@pytest.mark.asyncio
async def test_stats_without_household_is_none(db):
    user = await make_user(db)
    assert await CouplesService(db).get_household_stats(user.id) is None


def test_activity_streak_counts_back_from_latest_day():
    today = date(2025, 6, 10)
    assert activity_streak([], today) == 0
    assert activity_streak([today, today, today - timedelta(days=1)], today) == 2
    assert activity_streak([today - timedelta(days=1), today - timedelta(days=2)], today) == 2
    assert activity_streak([today - timedelta(days=2)], today) == 0
    assert activity_streak([today, today - timedelta(days=2)], today) == 1


@pytest.mark.asyncio
async def test_check_potential_mutual_like(db, couple):
    _, alice, bob = couple
    prop = await make_property(db)
    service = CouplesService(db)

    assert (await service.check_potential_mutual_like(alice.id, prop.id))["would_be_mutual"] is False

    await make_interaction(db, bob, prop)
    result = await service.check_potential_mutual_like(alice.id, prop.id)
    assert result == {"would_be_mutual": True, "partner_user_id": bob.id}


@pytest.mark.asyncio
async def test_disputed_properties_and_resolution(db, couple):
    _, alice, bob = couple
    contested = await make_property(db)
    agreed = await make_property(db)
    await make_interaction(db, alice, contested, score_data={"notes": "Love the yard"})
    await make_interaction(db, bob, contested, InteractionType.skip)
    await make_interaction(db, alice, agreed)
    await make_interaction(db, bob, agreed)

    service = CouplesService(db)
    disputed = await service.get_disputed_properties(alice.id)

    assert [d.property_id for d in disputed] == [contested.id]
    assert disputed[0].partner1.user_id == alice.id
    assert disputed[0].partner1.notes == "Love the yard"
    assert disputed[0].partner2.interaction_type == InteractionType.skip

    resolution = await service.resolve_disputed_property(bob.id, contested.id, ResolutionType.saved_for_later)
    assert resolution.resolution_type == ResolutionType.saved_for_later
    assert await service.get_disputed_properties(alice.id) == []

    # Resolving again updates the same row
    again = await service.resolve_disputed_property(alice.id, contested.id, ResolutionType.final_pass)
    assert again.id == resolution.id
    assert again.resolved_by == alice.id


@pytest.mark.asyncio
async def test_disputed_without_household_is_none(db):
    user = await make_user(db)
    assert await CouplesService(db).get_disputed_properties(user.id) is None
