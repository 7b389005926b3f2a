"""seed_roles

Revision ID: 8b4e6d2c1a55
Revises: 3f1c2a7b9d10
Create Date: 2026-10-12 09:20:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b4e6d2c1a55'
down_revision: Union[str, Sequence[str], None] = '3f1c2a7b9d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = (
    (1, 'Admin', 'Full access to the store and its settings'),
    (2, 'Staff', 'Manages products, orders and reviews'),
    (3, 'Customer', 'Shops and manages their own orders'),
)


def upgrade() -> None:
    """Insert the fixed roles."""
    roles = sa.table(
        'roles',
        sa.column('id', sa.Integer),
        sa.column('name', sa.String),
        sa.column('description', sa.String),
        sa.column('created_at', sa.DateTime(timezone=True)),
    )
    op.bulk_insert(
        roles,
        [
            {'id': role_id, 'name': name, 'description': description}
            for role_id, name, description in ROLES
        ],
    )
    op.execute("UPDATE roles SET created_at = now() WHERE created_at IS NULL")


def downgrade() -> None:
    op.execute("DELETE FROM roles WHERE id IN (1, 2, 3)")
