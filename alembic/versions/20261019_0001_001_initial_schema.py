"""Initial schema for feeds and episodes

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create feeds table
    op.create_table(
        'feeds',
        sa.Column('id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('title', sa.Text, nullable=True),
        sa.Column('subscribed', sa.Boolean, nullable=True),
        sa.Column('feedUrl', sa.Text, nullable=True),
        sa.Column('htmlUrl', sa.Text, nullable=True),
    )

    # Create episodes table
    op.create_table(
        'episodes',
        sa.Column('id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('title', sa.Text, nullable=True),
        sa.Column('played', sa.Boolean, nullable=True),
        sa.Column('feedId', sa.BigInteger, sa.ForeignKey('feeds.id'), nullable=False),
        sa.Column('publishedAt', sa.DateTime, nullable=True),
        sa.Column('updatedAt', sa.DateTime, nullable=True),
        sa.Column('htmlUrl', sa.Text, nullable=True),
        sa.Column('overcastUrl', sa.Text, nullable=True),
        sa.Column('mp3Url', sa.Text, nullable=True),
        sa.Column('progress', sa.Integer, nullable=True),
        sa.Column('userDeleted', sa.Boolean, nullable=True),
    )
    op.create_index('ix_episodes_feedId', 'episodes', ['feedId'])


def downgrade() -> None:
    op.drop_index('ix_episodes_feedId', table_name='episodes')
    op.drop_table('episodes')
    op.drop_table('feeds')
