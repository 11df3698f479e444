"""initial registry schema

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-18 10:12:44.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

role_enum = sa.Enum('NONE', 'PRODUCER', 'TRANSPORTER', 'BUYER', name='role')
status_enum = sa.Enum('PRODUCED', 'ORDERED', 'SHIPPED', 'DELIVERED', name='productstatus')
event_enum = sa.Enum(
    'PRODUCT_ADDED', 'STATUS_UPDATED', 'PRODUCT_QUERIED', 'ROLE_ASSIGNED',
    'PRODUCT_BOUGHT', 'PRODUCT_RECEIVED', 'ADMINISTRATOR_TRANSFERRED',
    name='eventtype')


def upgrade():
    op.create_table(
        'roleassignment',
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('account', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('role', role_enum, nullable=False),
        sa.Column('display_name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.PrimaryKeyConstraint('account'),
    )

    op.create_table(
        'administratorhandle',
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'product',
        sa.Column('id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('current_status', status_enum, nullable=False),
        sa.Column('producer', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column('buyer', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_product_current_status'), 'product', ['current_status'])
    op.create_index(op.f('ix_product_producer'), 'product', ['producer'])
    op.create_index(op.f('ix_product_buyer'), 'product', ['buyer'])

    op.create_table(
        'statusevent',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.BigInteger(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('status', status_enum, nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('remark', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('updater', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['product.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'status', name='uq_statusevent_product_status'),
        sa.UniqueConstraint('product_id', 'sequence', name='uq_statusevent_product_sequence'),
    )
    op.create_index(op.f('ix_statusevent_product_id'), 'statusevent', ['product_id'])

    op.create_table(
        'notificationevent',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', event_enum, nullable=False),
        sa.Column('product_id', sa.BigInteger(), nullable=True),
        sa.Column('account', sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notificationevent_event_type'), 'notificationevent', ['event_type'])
    op.create_index(op.f('ix_notificationevent_product_id'), 'notificationevent', ['product_id'])
    op.create_index(op.f('ix_notificationevent_account'), 'notificationevent', ['account'])
    op.create_index(op.f('ix_notificationevent_delivered_at'), 'notificationevent', ['delivered_at'])


def downgrade():
    """
    Drops the registry. Only meaningful for throwaway environments: the
    history and notification tables are otherwise never deleted from.
    """
    op.drop_table('notificationevent')
    op.drop_table('statusevent')
    op.drop_table('product')
    op.drop_table('administratorhandle')
    op.drop_table('roleassignment')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        event_enum.drop(bind, checkfirst=True)
        status_enum.drop(bind, checkfirst=True)
        role_enum.drop(bind, checkfirst=True)
