"""
Household collaboration queries: mutual likes, the shared activity feed,
household stats and disputed properties.

Everything is recomputed from ``user_property_interactions`` on each call.
A property is a mutual like when every current member of the household has
a ``like`` on it; households with fewer than two members never have any.
"""
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.errors import NotFoundError
from homematch.models import (
    HouseholdPropertyResolution,
    InteractionType,
    Property,
    ResolutionType,
    UserProfile,
    UserPropertyInteraction,
)
from homematch.models.base import as_utc, utcnow
from homematch.schemas.couples import (
    DisputedProperty,
    DisputedPropertySummary,
    DisputePartner,
    HouseholdActivityItem,
    HouseholdStats,
    MutualLike,
    PropertySummary,
)

logger = get_logger()

MIN_MEMBERS_FOR_MUTUAL = 2
CONFLICTING_TYPES = {InteractionType.dislike, InteractionType.skip}


def member_name(member: Optional[UserProfile]) -> str:
    if member is None:
        return "Unknown"
    return member.display_name or member.email or "Household member"


def activity_streak(days: List[date], today: date) -> int:
    """Consecutive days with activity, counted back from the most recent one.

    The run only counts if it ends today or yesterday.
    """
    if not days:
        return 0
    ordered = sorted(set(days), reverse=True)
    if ordered[0] not in (today, today - timedelta(days=1)):
        return 0
    streak = 0
    expected = ordered[0]
    for day in ordered:
        if day != expected:
            break
        streak += 1
        expected = day - timedelta(days=1)
    return streak


class CouplesService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_household(self, user_id: UUID) -> Optional[UUID]:
        result = await self.session.execute(select(UserProfile.household_id).where(UserProfile.id == user_id))
        return result.scalar_one_or_none()

    async def get_members(self, household_id: UUID) -> List[UserProfile]:
        result = await self.session.execute(select(UserProfile).where(UserProfile.household_id == household_id))
        return list(result.scalars().all())

    async def _mutual_likes_for_household(self, household_id: UUID) -> List[MutualLike]:
        members = await self.get_members(household_id)
        if len(members) < MIN_MEMBERS_FOR_MUTUAL:
            return []
        member_ids = [m.id for m in members]

        liked_by = func.count(distinct(UserPropertyInteraction.user_id))
        last_liked = func.max(UserPropertyInteraction.created_at)
        result = await self.session.execute(
            select(
                UserPropertyInteraction.property_id,
                liked_by,
                func.min(UserPropertyInteraction.created_at),
                last_liked,
            )
            .where(
                UserPropertyInteraction.user_id.in_(member_ids),
                UserPropertyInteraction.interaction_type == InteractionType.like,
            )
            .group_by(UserPropertyInteraction.property_id)
            .having(liked_by == len(member_ids))
            .order_by(last_liked.desc(), UserPropertyInteraction.property_id)
        )

        user_ids = sorted(member_ids, key=str)
        return [
            MutualLike(
                property_id=property_id,
                liked_by_count=count,
                first_liked_at=as_utc(first_liked_at),
                last_liked_at=as_utc(last_liked_at),
                user_ids=user_ids,
            )
            for property_id, count, first_liked_at, last_liked_at in result.all()
        ]

    async def get_mutual_likes(self, user_id: UUID, include_properties: bool = False) -> List[MutualLike]:
        household_id = await self.get_user_household(user_id)
        if household_id is None:
            return []
        mutual = await self._mutual_likes_for_household(household_id)

        if include_properties and mutual:
            result = await self.session.execute(
                select(Property).where(Property.id.in_([ml.property_id for ml in mutual]))
            )
            by_id = {p.id: p for p in result.scalars().all()}
            for ml in mutual:
                prop = by_id.get(ml.property_id)
                if prop is not None:
                    ml.property = PropertySummary(
                        id=prop.id,
                        address=prop.address,
                        price=float(prop.price),
                        bedrooms=prop.bedrooms,
                        bathrooms=prop.bathrooms,
                        images=prop.images or [],
                    )

        logger.info("Mutual likes computed", household_id=str(household_id), count=len(mutual))
        return mutual

    async def get_household_activity(self, user_id: UUID, limit: int = 20, offset: int = 0) -> List[HouseholdActivityItem]:
        household_id = await self.get_user_household(user_id)
        if household_id is None:
            return []

        members = {m.id: m for m in await self.get_members(household_id)}
        result = await self.session.execute(
            select(UserPropertyInteraction, Property)
            .join(Property, Property.id == UserPropertyInteraction.property_id)
            .where(UserPropertyInteraction.user_id.in_(list(members)))
            .order_by(UserPropertyInteraction.created_at.desc(), UserPropertyInteraction.id)
            .offset(offset)
            .limit(limit)
        )
        rows = result.all()
        mutual_ids = {ml.property_id for ml in await self._mutual_likes_for_household(household_id)}

        activity = []
        for interaction, prop in rows:
            member = members.get(interaction.user_id)
            activity.append(
                HouseholdActivityItem(
                    id=interaction.id,
                    user_id=interaction.user_id,
                    property_id=interaction.property_id,
                    interaction_type=interaction.interaction_type,
                    created_at=as_utc(interaction.created_at),
                    user_display_name=member_name(member),
                    user_email=member.email if member else None,
                    property_address=prop.address or "",
                    property_price=float(prop.price or 0),
                    property_bedrooms=prop.bedrooms or 0,
                    property_bathrooms=prop.bathrooms or 0,
                    property_images=prop.images or [],
                    is_mutual=(
                        interaction.interaction_type == InteractionType.like
                        and interaction.property_id in mutual_ids
                    ),
                )
            )
        return activity

    async def get_household_stats(self, user_id: UUID) -> Optional[HouseholdStats]:
        household_id = await self.get_user_household(user_id)
        if household_id is None:
            return None

        member_ids = [m.id for m in await self.get_members(household_id)]
        mutual = await self._mutual_likes_for_household(household_id)

        total_likes = await self.session.execute(
            select(func.count())
            .select_from(UserPropertyInteraction)
            .where(
                UserPropertyInteraction.user_id.in_(member_ids),
                UserPropertyInteraction.interaction_type == InteractionType.like,
            )
        )
        recent = await self.session.execute(
            select(UserPropertyInteraction.created_at)
            .where(
                UserPropertyInteraction.user_id.in_(member_ids),
                UserPropertyInteraction.created_at >= utcnow() - timedelta(days=366),
            )
            .order_by(UserPropertyInteraction.created_at.desc())
        )
        days = [as_utc(ts).date() for ts in recent.scalars().all()]

        return HouseholdStats(
            total_mutual_likes=len(mutual),
            total_household_likes=total_likes.scalar_one(),
            activity_streak_days=activity_streak(days, utcnow().date()),
            last_mutual_like_at=mutual[0].last_liked_at if mutual else None,
        )

    async def check_potential_mutual_like(self, user_id: UUID, property_id: UUID) -> dict:
        """Whether another household member has already liked ``property_id``."""
        household_id = await self.get_user_household(user_id)
        if household_id is None:
            return {"would_be_mutual": False, "partner_user_id": None}

        member_ids = [m.id for m in await self.get_members(household_id) if m.id != user_id]
        if not member_ids:
            return {"would_be_mutual": False, "partner_user_id": None}
        result = await self.session.execute(
            select(UserPropertyInteraction.user_id)
            .where(
                UserPropertyInteraction.property_id == property_id,
                UserPropertyInteraction.interaction_type == InteractionType.like,
                UserPropertyInteraction.user_id.in_(member_ids),
            )
            .limit(1)
        )
        partner = result.scalar_one_or_none()
        return {"would_be_mutual": partner is not None, "partner_user_id": partner}

    async def get_disputed_properties(self, user_id: UUID) -> Optional[List[DisputedProperty]]:
        """Properties where members' latest reactions conflict (like vs dislike/skip).

        Returns ``None`` when the user has no household.
        """
        household_id = await self.get_user_household(user_id)
        if household_id is None:
            return None

        members = {m.id: m for m in await self.get_members(household_id)}
        if len(members) < MIN_MEMBERS_FOR_MUTUAL:
            return []

        resolved = await self.session.execute(
            select(HouseholdPropertyResolution.property_id).where(
                HouseholdPropertyResolution.household_id == household_id
            )
        )
        resolved_ids = set(resolved.scalars().all())

        result = await self.session.execute(
            select(UserPropertyInteraction, Property)
            .join(Property, Property.id == UserPropertyInteraction.property_id)
            .where(
                UserPropertyInteraction.user_id.in_(list(members)),
                UserPropertyInteraction.interaction_type.in_(
                    [InteractionType.like, InteractionType.dislike, InteractionType.skip]
                ),
            )
            .order_by(UserPropertyInteraction.created_at.desc())
        )

        latest: Dict[UUID, Dict[UUID, UserPropertyInteraction]] = defaultdict(dict)
        properties: Dict[UUID, Property] = {}
        for interaction, prop in result.all():
            if interaction.property_id in resolved_ids:
                continue
            properties[interaction.property_id] = prop
            # Rows arrive newest first
            latest[interaction.property_id].setdefault(interaction.user_id, interaction)

        disputed = []
        for property_id, by_user in latest.items():
            if len(by_user) < 2:
                continue
            types = {i.interaction_type for i in by_user.values()}
            if InteractionType.like not in types or not (types & CONFLICTING_TYPES):
                continue
            liker = next(i for i in by_user.values() if i.interaction_type == InteractionType.like)
            objector = next(i for i in by_user.values() if i.interaction_type in CONFLICTING_TYPES)
            prop = properties[property_id]
            disputed.append(
                DisputedProperty(
                    property_id=property_id,
                    property=DisputedPropertySummary(
                        address=prop.address,
                        price=float(prop.price or 0),
                        bedrooms=prop.bedrooms or 0,
                        bathrooms=prop.bathrooms or 0,
                        square_feet=prop.square_feet,
                        images=prop.images or [],
                        listing_status=prop.listing_status.value if prop.listing_status else "unknown",
                    ),
                    partner1=self._partner(liker, members),
                    partner2=self._partner(objector, members),
                    last_updated=max(as_utc(liker.created_at), as_utc(objector.created_at)),
                )
            )
        disputed.sort(key=lambda d: d.last_updated, reverse=True)
        logger.info("Disputed properties computed", household_id=str(household_id), count=len(disputed))
        return disputed

    @staticmethod
    def _partner(interaction: UserPropertyInteraction, members: Dict[UUID, UserProfile]) -> DisputePartner:
        member = members.get(interaction.user_id)
        score_data = interaction.score_data if isinstance(interaction.score_data, dict) else None
        notes = score_data.get("notes") if score_data else None
        return DisputePartner(
            user_id=interaction.user_id,
            user_name=member_name(member),
            user_email=(member.email if member else None) or "",
            interaction_type=interaction.interaction_type,
            created_at=as_utc(interaction.created_at),
            score_data=score_data,
            notes=notes if isinstance(notes, str) else None,
        )

    async def resolve_disputed_property(
        self, user_id: UUID, property_id: UUID, resolution_type: ResolutionType
    ) -> Optional[HouseholdPropertyResolution]:
        """Upsert the household's resolution for ``property_id``; ``None`` without a household."""
        household_id = await self.get_user_household(user_id)
        if household_id is None:
            return None
        if await self.session.get(Property, property_id) is None:
            raise NotFoundError("Property not found", {"property_id": str(property_id)})

        result = await self.session.execute(
            select(HouseholdPropertyResolution).where(
                HouseholdPropertyResolution.household_id == household_id,
                HouseholdPropertyResolution.property_id == property_id,
            )
        )
        resolution = result.scalar_one_or_none()
        now = utcnow()
        if resolution is None:
            resolution = HouseholdPropertyResolution(household_id=household_id, property_id=property_id)
            self.session.add(resolution)
        resolution.resolution_type = resolution_type
        resolution.resolved_by = user_id
        resolution.resolved_at = now
        resolution.updated_at = now
        await self.session.commit()
        await self.session.refresh(resolution)
        logger.info(
            "Dispute resolved",
            household_id=str(household_id),
            property_id=str(property_id),
            resolution_type=resolution_type.value,
        )
        return resolution
