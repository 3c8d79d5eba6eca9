"""Initial Taskboard schema.

Notes:
- Integer primary keys; membership and assignment tables use composite keys.
- Enums use VARCHAR + CHECK constraints (native_enum=False).
- Audit details are stored as JSON.
"""

from __future__ import annotations

from typing import Optional

from alembic import op

from taskboard_api.db import metadata

# Revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None


def upgrade() -> None:
    # Import models so metadata is populated.
    import taskboard_api.models  # noqa: F401

    metadata.create_all(bind=op.get_bind())


def downgrade() -> None:  # pragma: no cover
    raise NotImplementedError("Downgrades are not supported.")
