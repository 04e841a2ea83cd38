# app/models/__init__.py
from app.db.base import Base  # noqa: F401

from . import user             # noqa: F401
from . import campaign         # noqa: F401
from . import campaign_member  # noqa: F401
from . import campaign_invite  # noqa: F401
from . import audit_log        # noqa: F401
