from .base import Base
from .neighborhood import Neighborhood
from .property import ListingStatus, Property, PropertyType
from .household import CollaborationMode, Household, HouseholdInvitation, InvitationStatus
from .user_profile import UserProfile
from .interaction import InteractionType, UserPropertyInteraction
from .saved_search import SavedSearch
from .resolution import HouseholdPropertyResolution, ResolutionType

__all__ = [
    "Base",
    "Neighborhood",
    "Property",
    "PropertyType",
    "ListingStatus",
    "Household",
    "HouseholdInvitation",
    "CollaborationMode",
    "InvitationStatus",
    "UserProfile",
    "UserPropertyInteraction",
    "InteractionType",
    "SavedSearch",
    "HouseholdPropertyResolution",
    "ResolutionType",
]
