from app.models.admin_user import AdminUser
from app.models.category import Category
from app.models.profile import Profile
from app.models.social_link import SocialLink
from app.models.tag import Tag, ProfileTag

__all__ = [
    "AdminUser",
    "Category",
    "Profile",
    "SocialLink",
    "Tag",
    "ProfileTag",
]
