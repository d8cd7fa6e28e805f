"""create_users_and_tasks

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-17 10:12:03.418220
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False, comment='显示名'),
        sa.Column('email', sa.String(length=128), nullable=False, comment='邮箱（小写存储）'),
        sa.Column('hashed_pwd', sa.String(length=256), nullable=False, comment='密码哈希'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'tasks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False, comment='标题'),
        sa.Column('description', sa.String(length=500), nullable=True, comment='描述'),
        sa.Column(
            'status',
            sa.Enum('incomplete', 'completed', name='task_status', native_enum=False, length=16),
            nullable=False,
            comment='状态: incomplete/completed',
        ),
        sa.Column(
            'priority',
            sa.Enum('low', 'medium', 'high', name='task_priority', native_enum=False, length=16),
            nullable=False,
            comment='优先级: low/medium/high',
        ),
        sa.Column('deadline', sa.DateTime(timezone=True), nullable=True, comment='截止时间'),
        sa.Column('user_id', sa.Uuid(), nullable=False, comment='所属用户ID'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='更新时间'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tasks_user_status', 'tasks', ['user_id', 'status'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_tasks_user_status', table_name='tasks')
    op.drop_table('tasks')
    op.drop_table('users')
