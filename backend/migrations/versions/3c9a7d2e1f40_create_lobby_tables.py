"""create user, game_type, game, room and player tables

Revision ID: 3c9a7d2e1f40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9a7d2e1f40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'game_type' not in existing_tables:
        op.create_table(
            'game_type',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
        )
        op.create_index('ix_game_type_name', 'game_type', ['name'], unique=True)

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('game_type_id', sa.Integer(), sa.ForeignKey('game_type.id'), nullable=True),
        )

    if 'room' not in existing_tables:
        op.create_table(
            'room',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=True),
        )
        op.create_index('ix_room_name', 'room', ['name'], unique=True)

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('room_name', sa.String(length=64), nullable=False),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
            sa.Column('sid', sa.String(length=64), nullable=False),
        )
        op.create_index('ix_player_room_name', 'player', ['room_name'])
        op.create_index('ix_player_sid', 'player', ['sid'])


def downgrade():
    op.drop_table('player')
    op.drop_table('room')
    op.drop_table('game')
    op.drop_table('game_type')
    op.drop_table('user')
