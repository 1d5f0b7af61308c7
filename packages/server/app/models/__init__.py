# SQLModel definitions — imported here to ensure metadata is populated.
from .base import IntIDMixin, CreatedAtMixin  # noqa: F401
from .organization import Organization, Team  # noqa: F401
from .user import User  # noqa: F401
from .user_org import UserOrganization, TeamMember  # noqa: F401
from .invite import Invite  # noqa: F401
