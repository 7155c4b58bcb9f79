"""create game and move tables

Revision ID: 3a9c1d7e5b20
Revises:
Create Date: 2026-10-18 12:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a9c1d7e5b20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('code', sa.String(length=16), primary_key=True),
            sa.Column('kind', sa.String(length=16), nullable=False),
            sa.Column('players', sa.Text(), nullable=False),
            sa.Column('current_player', sa.String(length=64), nullable=True),
            sa.Column('status', sa.String(length=32), nullable=False),
            sa.Column('state', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_game_kind', 'game', ['kind'])
        op.create_index('ix_game_status', 'game', ['status'])

    if 'move' not in existing_tables:
        op.create_table(
            'move',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_code', sa.String(length=16), sa.ForeignKey('game.code'), nullable=False),
            sa.Column('player', sa.String(length=64), nullable=False),
            sa.Column('move_type', sa.String(length=32), nullable=False),
            sa.Column('move_data', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_move_game_code', 'move', ['game_code'])


def downgrade():
    op.drop_index('ix_move_game_code', table_name='move')
    op.drop_table('move')
    op.drop_index('ix_game_status', table_name='game')
    op.drop_index('ix_game_kind', table_name='game')
    op.drop_table('game')
