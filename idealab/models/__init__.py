"""
Idea Lab – SQLAlchemy ORM models package.

Imports all model classes so the app can discover them through a single
``from idealab.models import *`` import.
"""

from idealab.models.user import User                                 # noqa: F401
from idealab.models.brainwriting import Brainwriting, UsageScope     # noqa: F401
from idealab.models.brainwriting_user import BrainwritingUser       # noqa: F401
from idealab.models.brainwriting_sheet import BrainwritingSheet     # noqa: F401
from idealab.models.brainwriting_input import BrainwritingInput     # noqa: F401
