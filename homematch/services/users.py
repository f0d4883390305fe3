import secrets
import string
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from homematch.errors import AuthorizationError, NotFoundError, ValidationError
from homematch.models import (
    Household,
    HouseholdInvitation,
    InteractionType,
    InvitationStatus,
    Property,
    SavedSearch,
    UserProfile,
    UserPropertyInteraction,
)
from homematch.models.base import as_utc, utcnow
from homematch.schemas.interaction import InteractionCursor
from homematch.schemas.user import (
    ActivitySummary,
    HouseholdActivitySummary,
    HouseholdCreate,
    InvitationCreate,
    ProfileUpdate,
    SavedSearchCreate,
    SavedSearchUpdate,
)

logger = get_logger()

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_LENGTH = 8
INVITATION_TTL = timedelta(days=7)


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def display_name_for(auth_user: dict) -> Optional[str]:
    metadata = auth_user.get("user_metadata") or {}
    name = metadata.get("display_name") or metadata.get("full_name") or metadata.get("name")
    if name:
        return name
    email = auth_user.get("email")
    return email.split("@")[0] if email else None


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # Profiles

    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        return await self.session.get(UserProfile, user_id)

    async def get_or_create_profile(self, auth_user: dict) -> UserProfile:
        """Return the profile for a verified auth user, creating it on first sight."""
        user_id = UUID(str(auth_user["id"]))
        profile = await self.get_profile(user_id)
        if profile is not None:
            return profile
        profile = UserProfile(
            id=user_id,
            email=auth_user.get("email"),
            display_name=display_name_for(auth_user),
            onboarding_completed=False,
            preferences={},
        )
        self.session.add(profile)
        try:
            await self.session.commit()
        except IntegrityError:
            # Another request created it first
            await self.session.rollback()
            existing = await self.get_profile(user_id)
            if existing is None:
                raise
            logger.info("User profile already existed", user_id=str(user_id))
            return existing
        await self.session.refresh(profile)
        logger.info("User profile created", user_id=str(user_id))
        return profile

    async def update_profile(self, user_id: UUID, changes: ProfileUpdate) -> UserProfile:
        profile = await self.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found", {"user_id": str(user_id)})
        data = changes.model_dump(exclude_unset=True)
        if "preferences" in data:
            # Shallow merge so partial updates don't wipe other keys
            merged = dict(profile.preferences or {})
            merged.update(data.pop("preferences") or {})
            profile.preferences = merged
        for field, value in data.items():
            setattr(profile, field, value)
        profile.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(profile)
        return profile

    async def set_preference(self, user_id: UUID, key: str, value) -> UserProfile:
        profile = await self.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found", {"user_id": str(user_id)})
        preferences = dict(profile.preferences or {})
        if value is None:
            preferences.pop(key, None)
        else:
            preferences[key] = value
        profile.preferences = preferences
        profile.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(profile)
        return profile

    # Households

    async def get_household(self, household_id: UUID) -> Optional[Household]:
        return await self.session.get(Household, household_id)

    async def get_household_members(self, household_id: UUID) -> List[UserProfile]:
        result = await self.session.execute(
            select(UserProfile).where(UserProfile.household_id == household_id).order_by(UserProfile.created_at)
        )
        return list(result.scalars().all())

    async def _unique_invite_code(self) -> str:
        while True:
            code = generate_invite_code()
            taken = await self.session.execute(select(Household.id).where(Household.invite_code == code))
            if taken.first() is None:
                return code

    async def _link(self, profile: UserProfile, household_id: UUID) -> None:
        profile.household_id = household_id
        profile.updated_at = utcnow()
        await self.session.execute(
            update(Household)
            .where(Household.id == household_id)
            .values(user_count=Household.user_count + 1, updated_at=utcnow())
        )

    async def _unlink(self, profile: UserProfile) -> None:
        household_id = profile.household_id
        profile.household_id = None
        profile.updated_at = utcnow()
        await self.session.execute(
            update(Household)
            .where(Household.id == household_id, Household.user_count > 0)
            .values(user_count=Household.user_count - 1, updated_at=utcnow())
        )

    async def _require_profile(self, user_id: UUID) -> UserProfile:
        profile = await self.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found", {"user_id": str(user_id)})
        return profile

    async def create_household(self, user_id: UUID, data: Optional[HouseholdCreate] = None) -> Household:
        data = data or HouseholdCreate()
        profile = await self._require_profile(user_id)
        if profile.household_id is not None:
            raise ValidationError("User already belongs to a household")

        household = Household(
            name=data.name or f"{profile.display_name or 'My'} household",
            invite_code=await self._unique_invite_code(),
            collaboration_mode=data.collaboration_mode,
            created_by=user_id,
            user_count=0,
        )
        self.session.add(household)
        await self.session.flush()
        await self._link(profile, household.id)
        await self.session.commit()
        await self.session.refresh(household)
        logger.info("Household created", household_id=str(household.id), user_id=str(user_id))
        return household

    async def join_household(self, user_id: UUID, invite_code: str) -> Household:
        profile = await self._require_profile(user_id)
        result = await self.session.execute(
            select(Household).where(Household.invite_code == invite_code.strip().upper())
        )
        household = result.scalar_one_or_none()
        if household is None:
            raise NotFoundError("Invalid invite code")
        if profile.household_id is not None:
            raise ValidationError("User already belongs to a household")
        await self._link(profile, household.id)
        await self.session.commit()
        await self.session.refresh(household)
        logger.info("Household joined", household_id=str(household.id), user_id=str(user_id))
        return household

    async def leave_household(self, user_id: UUID) -> UserProfile:
        profile = await self._require_profile(user_id)
        if profile.household_id is None:
            raise ValidationError("User is not in a household")
        household_id = profile.household_id
        await self._unlink(profile)
        await self.session.commit()
        await self.session.refresh(profile)
        logger.info("Household left", household_id=str(household_id), user_id=str(user_id))
        return profile

    # Invitations

    async def create_invitation(self, user_id: UUID, data: InvitationCreate) -> HouseholdInvitation:
        profile = await self._require_profile(user_id)
        if profile.household_id is None:
            raise ValidationError("Create or join a household before inviting others")
        invitation = HouseholdInvitation(
            token=secrets.token_urlsafe(32),
            household_id=profile.household_id,
            created_by=user_id,
            invited_email=data.invited_email.lower(),
            invited_name=data.invited_name,
            message=data.message,
            status=InvitationStatus.pending,
            expires_at=utcnow() + INVITATION_TTL,
        )
        self.session.add(invitation)
        await self.session.commit()
        await self.session.refresh(invitation)
        logger.info("Invitation created", household_id=str(profile.household_id), invitation_id=str(invitation.id))
        return invitation

    async def accept_invitation(self, user_id: UUID, token: str) -> Household:
        profile = await self._require_profile(user_id)
        result = await self.session.execute(select(HouseholdInvitation).where(HouseholdInvitation.token == token))
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFoundError("Invitation not found")
        if invitation.status != InvitationStatus.pending:
            raise ValidationError(f"Invitation is {invitation.status.value}")
        if as_utc(invitation.expires_at) <= utcnow():
            invitation.status = InvitationStatus.expired
            invitation.updated_at = utcnow()
            await self.session.commit()
            raise ValidationError("Invitation has expired")
        if profile.household_id == invitation.household_id:
            raise ValidationError("Already a member of this household")
        if profile.household_id is not None:
            raise ValidationError("Leave your current household before accepting this invitation")

        await self._link(profile, invitation.household_id)
        invitation.status = InvitationStatus.accepted
        invitation.accepted_by = user_id
        invitation.accepted_at = utcnow()
        invitation.updated_at = utcnow()
        await self.session.commit()
        logger.info("Invitation accepted", household_id=str(invitation.household_id), user_id=str(user_id))
        return await self.get_household(invitation.household_id)

    # Interactions

    async def record_interaction(
        self, user_id: UUID, property_id: UUID, interaction_type: InteractionType
    ) -> UserPropertyInteraction:
        profile = await self._require_profile(user_id)
        prop = await self.session.get(Property, property_id)
        if prop is None or not prop.is_active:
            raise NotFoundError("Property not found", {"property_id": str(property_id)})

        # One definitive state per (user, property)
        await self.session.execute(
            delete(UserPropertyInteraction).where(
                UserPropertyInteraction.user_id == user_id,
                UserPropertyInteraction.property_id == property_id,
            )
        )
        interaction = UserPropertyInteraction(
            user_id=user_id,
            property_id=property_id,
            household_id=profile.household_id,
            interaction_type=interaction_type,
        )
        self.session.add(interaction)
        await self.session.commit()
        await self.session.refresh(interaction)
        logger.info(
            "Interaction recorded",
            user_id=str(user_id),
            property_id=str(property_id),
            interaction_type=interaction_type.value,
        )
        return interaction

    async def get_user_interactions(
        self,
        user_id: UUID,
        interaction_type: InteractionType,
        cursor: Optional[InteractionCursor] = None,
        limit: int = 20,
    ) -> Tuple[List[Property], Optional[str]]:
        """Properties the user interacted with, newest first.

        ``cursor`` points after the last item of the previous page;
        the returned cursor is ``None`` once there is nothing left.
        """
        created_at = UserPropertyInteraction.created_at
        stmt = (
            select(created_at, UserPropertyInteraction.id, Property)
            .join(Property, Property.id == UserPropertyInteraction.property_id)
            .where(
                UserPropertyInteraction.user_id == user_id,
                UserPropertyInteraction.interaction_type == interaction_type,
            )
            .order_by(created_at.desc(), UserPropertyInteraction.id.desc())
            .limit(limit + 1)
        )
        if cursor is not None:
            if cursor.id is None:
                stmt = stmt.where(created_at < cursor.created_at)
            else:
                stmt = stmt.where(
                    or_(
                        created_at < cursor.created_at,
                        and_(created_at == cursor.created_at, UserPropertyInteraction.id < cursor.id),
                    )
                )
        rows = (await self.session.execute(stmt)).all()
        page = rows[:limit]
        next_cursor = None
        if len(rows) > limit and page:
            last_created_at, last_id, _ = page[-1]
            next_cursor = InteractionCursor(as_utc(last_created_at), last_id).encode()
        return [prop for _, _, prop in page], next_cursor

    async def _interaction_counts(self, user_id: UUID) -> dict:
        result = await self.session.execute(
            select(UserPropertyInteraction.interaction_type, func.count())
            .where(UserPropertyInteraction.user_id == user_id)
            .group_by(UserPropertyInteraction.interaction_type)
        )
        counts = {t: 0 for t in InteractionType}
        for interaction_type, count in result.all():
            counts[InteractionType(interaction_type)] = count
        return counts

    async def get_interaction_summary(self, user_id: UUID) -> dict:
        counts = await self._interaction_counts(user_id)
        return {
            "liked": counts[InteractionType.like],
            "passed": counts[InteractionType.dislike] + counts[InteractionType.skip],
            "viewed": counts[InteractionType.view],
        }

    # Saved searches

    async def create_saved_search(self, user_id: UUID, data: SavedSearchCreate) -> SavedSearch:
        profile = await self._require_profile(user_id)
        household_id = None
        if data.share_with_household:
            if profile.household_id is None:
                raise ValidationError("Join a household before sharing searches")
            household_id = profile.household_id
        search = SavedSearch(
            user_id=user_id,
            household_id=household_id,
            name=data.name,
            filters=data.filters.model_dump(mode="json", exclude_none=True),
            notify=data.notify,
        )
        self.session.add(search)
        await self.session.commit()
        await self.session.refresh(search)
        logger.info("Saved search created", user_id=str(user_id), saved_search_id=str(search.id))
        return search

    async def list_saved_searches(self, user_id: UUID) -> List[SavedSearch]:
        profile = await self.get_profile(user_id)
        visible = SavedSearch.user_id == user_id
        if profile is not None and profile.household_id is not None:
            visible = or_(visible, SavedSearch.household_id == profile.household_id)
        result = await self.session.execute(
            select(SavedSearch)
            .where(visible, SavedSearch.is_active.is_(True))
            .order_by(SavedSearch.created_at.desc())
        )
        return list(result.scalars().all())

    async def _owned_search(self, user_id: UUID, search_id: UUID) -> SavedSearch:
        search = await self.session.get(SavedSearch, search_id)
        if search is None or not search.is_active:
            raise NotFoundError("Saved search not found", {"saved_search_id": str(search_id)})
        if search.user_id != user_id:
            raise AuthorizationError("Only the owner can modify this saved search")
        return search

    async def update_saved_search(self, user_id: UUID, search_id: UUID, data: SavedSearchUpdate) -> SavedSearch:
        search = await self._owned_search(user_id, search_id)
        changes = data.model_dump(exclude_unset=True)
        if "filters" in changes:
            filters = data.filters.model_dump(mode="json", exclude_none=True) if data.filters else {}
            search.filters = filters
            changes.pop("filters")
        for field, value in changes.items():
            if value is not None:
                setattr(search, field, value)
        search.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(search)
        return search

    async def delete_saved_search(self, user_id: UUID, search_id: UUID) -> None:
        search = await self._owned_search(user_id, search_id)
        search.is_active = False
        search.updated_at = utcnow()
        await self.session.commit()
        logger.info("Saved search deleted", user_id=str(user_id), saved_search_id=str(search_id))

    # Analytics

    async def get_user_activity_summary(self, user_id: UUID) -> ActivitySummary:
        counts = await self._interaction_counts(user_id)
        saved = await self.session.execute(
            select(func.count())
            .select_from(SavedSearch)
            .where(SavedSearch.user_id == user_id, SavedSearch.is_active.is_(True))
        )
        return ActivitySummary(
            likes=counts[InteractionType.like],
            dislikes=counts[InteractionType.dislike],
            skips=counts[InteractionType.skip],
            views=counts[InteractionType.view],
            saved_searches=saved.scalar_one(),
            total_interactions=sum(counts.values()),
        )

    async def get_household_activity_summary(self, household_id: UUID) -> HouseholdActivitySummary:
        members = await self.get_household_members(household_id)
        summary = HouseholdActivitySummary(members=len(members))
        for member in members:
            activity = await self.get_user_activity_summary(member.id)
            summary.total_likes += activity.likes
            summary.total_dislikes += activity.dislikes
            summary.total_views += activity.views
            summary.total_saved_searches += activity.saved_searches
            summary.total_interactions += activity.total_interactions
        return summary
