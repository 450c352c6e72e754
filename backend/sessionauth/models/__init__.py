# Import all models so Base.metadata is populated for create_all.
from sessionauth.models.user import User  # noqa: F401
from sessionauth.models.session import Session  # noqa: F401
