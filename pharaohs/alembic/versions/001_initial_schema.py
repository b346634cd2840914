"""001_initial_schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

Initial Pharaohs schema - creates all tables from scratch:
- Accounts: users, player_profiles, scout_profiles, player_stats
- Media: videos, likes, comments
- Scouting: locations, tryouts, invitations, shortlists
- Messaging and audit: notifications, system_logs
Including the unique indexes behind duplicate invite/like/shortlist checks.
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from the current models."""
    from pharaohs.database.db import Base
    from pharaohs.database import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.create_all(bind=bind, checkfirst=True)


def downgrade() -> None:
    """Drop all tables."""
    from pharaohs.database.db import Base
    from pharaohs.database import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind, checkfirst=True)
