"""initial quizgrid schema: users, quizzes, sessions, players, tiles, question draws

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'quiz',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
    )

    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quiz.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_option', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
    )
    op.create_index('ix_question_quiz_id', 'question', ['quiz_id'])

    op.create_table(
        'game_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('join_code', sa.String(length=6), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('board_size', sa.Integer(), nullable=False),
        sa.Column('time_limit', sa.Integer(), nullable=False),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quiz.id'), nullable=False),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('started_at', sa.Float(), nullable=True),
        sa.Column('ended_at', sa.Float(), nullable=True),
        sa.Column('event_seq', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('players_joined', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_game_session_join_code', 'game_session', ['join_code'])

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('color', sa.String(length=16), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tiles_owned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('start_x', sa.Integer(), nullable=True),
        sa.Column('start_y', sa.Integer(), nullable=True),
        sa.Column('joined_at', sa.Float(), nullable=False),
        sa.Column('last_active', sa.Float(), nullable=False),
        sa.Column('question_cycle', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cooldown_until', sa.Float(), nullable=True),
    )
    op.create_index('ix_player_session_id', 'player', ['session_id'])

    op.create_table(
        'tile',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('x', sa.Integer(), nullable=False),
        sa.Column('y', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
        sa.Column('claimed_at', sa.Float(), nullable=True),
        sa.UniqueConstraint('session_id', 'x', 'y', name='uq_tile_session_xy'),
    )
    op.create_index('ix_tile_session_id', 'tile', ['session_id'])
    op.create_index('ix_tile_owner_id', 'tile', ['owner_id'])

    op.create_table(
        'question_draw',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('question.id'), nullable=False),
        sa.Column('cycle', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tile_x', sa.Integer(), nullable=False),
        sa.Column('tile_y', sa.Integer(), nullable=False),
        sa.Column('served_at', sa.Float(), nullable=False),
        sa.Column('answered_at', sa.Float(), nullable=True),
        sa.Column('option_index', sa.Integer(), nullable=True),
        sa.Column('outcome', sa.String(length=32), nullable=True),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_question_draw_session_id', 'question_draw', ['session_id'])
    op.create_index('ix_question_draw_player_id', 'question_draw', ['player_id'])


def downgrade():
    op.drop_table('question_draw')
    op.drop_table('tile')
    op.drop_table('player')
    op.drop_table('game_session')
    op.drop_table('question')
    op.drop_table('quiz')
    op.drop_table('user')
