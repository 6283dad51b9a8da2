from cityguide.models.users import UserAuth
from cityguide.models.places import Place
from cityguide.models.reviews import Review
from cityguide.models.favorites import Favorite
from cityguide.models.submissions import PlaceSubmission, PlaceUpdate

__all__ = ["UserAuth", "Place", "Review", "Favorite", "PlaceSubmission", "PlaceUpdate"]
