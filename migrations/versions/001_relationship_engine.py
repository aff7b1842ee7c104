"""users and relationship_edges tables

Revision ID: 001
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _binary_string(length: int) -> sa.String:
    # User IDs are case-sensitive; MySQL's default collation is not
    return sa.String(length=length).with_variant(mysql.VARCHAR(length, collation='utf8mb4_bin'), 'mysql')


def upgrade() -> None:
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', _binary_string(64), nullable=False),
        sa.Column('friend_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # --- relationship_edges ---
    op.create_table(
        'relationship_edges',
        sa.Column('pair_key', _binary_string(129), nullable=False),
        sa.Column('user_a', _binary_string(64), nullable=False),
        sa.Column('user_b', _binary_string(64), nullable=False),
        sa.Column('state', sa.String(length=16), server_default='none', nullable=False),
        sa.Column('requested_by', _binary_string(64), nullable=True),
        sa.Column('blocked_by', _binary_string(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.CheckConstraint('user_a <> user_b', name='chk_relationship_edges_not_self'),
        sa.CheckConstraint(
            "state <> 'pending' OR requested_by IS NOT NULL",
            name='chk_relationship_edges_pending_requester',
        ),
        sa.CheckConstraint(
            "state <> 'blocked' OR blocked_by IS NOT NULL",
            name='chk_relationship_edges_blocker',
        ),
        sa.PrimaryKeyConstraint('pair_key')
    )
    op.create_index(
        'idx_relationship_edges_user_a', 'relationship_edges', ['user_a', 'state', 'pair_key'], unique=False
    )
    op.create_index(
        'idx_relationship_edges_user_b', 'relationship_edges', ['user_b', 'state', 'pair_key'], unique=False
    )


def downgrade() -> None:
    op.drop_index('idx_relationship_edges_user_b', table_name='relationship_edges')
    op.drop_index('idx_relationship_edges_user_a', table_name='relationship_edges')
    op.drop_table('relationship_edges')
    op.drop_table('users')
