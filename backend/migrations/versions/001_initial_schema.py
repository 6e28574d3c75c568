"""
Alembic migration: Initial sandtrack schema.

Creates customers, master service agreements, orders, the fleet tables,
quality control tables, deliveries with their status history, and invoices.
Enum columns are stored as strings. The partial unique indexes on
deliveries keep a truck or driver on at most one active delivery.

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')
ACTIVE_DELIVERY = sa.text("status <> 'delivered'")


def _base_columns() -> list:
    return [
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _version_column() -> sa.Column:
    return sa.Column(
        'version',
        sa.Integer(),
        nullable=False,
        server_default=sa.text('1'),
        comment='Optimistic lock version counter',
    )


def upgrade() -> None:
    """
    Upgrade database schema to the initial sandtrack tables.

    Tables are created in foreign key order.
    """
    op.create_table(
        'customers',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        comment='Customers',
    )

    op.create_table(
        'master_service_agreements',
        *_base_columns(),
        sa.Column(
            'customer_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('customers.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('payment_terms', sa.String(length=255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        comment='Master service agreements',
    )
    op.create_index(
        'ix_master_service_agreements_customer_id',
        'master_service_agreements',
        ['customer_id'],
    )

    op.create_table(
        'orders',
        *_base_columns(),
        sa.Column('order_number', sa.String(length=50), nullable=False, unique=True),
        sa.Column(
            'customer_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('customers.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='draft'),
        sa.Column('delivery_location', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('product_name', sa.String(length=100), nullable=False, server_default='Frac sand'),
        sa.Column('quantity_tons', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default=sa.text('0')),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            'msa_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('master_service_agreements.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('quarry_name', sa.String(length=255), nullable=True),
        sa.Column('quarry_lat', sa.Float(), nullable=True),
        sa.Column('quarry_lng', sa.Float(), nullable=True),
        sa.Column('well_name', sa.String(length=255), nullable=True),
        sa.Column('well_lat', sa.Float(), nullable=True),
        sa.Column('well_lng', sa.Float(), nullable=True),
        _version_column(),
        sa.CheckConstraint('total_amount >= 0', name='ck_orders_total_amount_non_negative'),
        sa.CheckConstraint('quantity_tons >= 0', name='ck_orders_quantity_non_negative'),
        comment='Sand orders',
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_status_created', 'orders', ['status', 'created_at'])

    op.create_table(
        'drivers',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('license_number', sa.String(length=50), nullable=True, unique=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('hours_worked', sa.Float(), nullable=False, server_default=sa.text('0')),
        sa.Column('hours_limit', sa.Float(), nullable=False, server_default=sa.text('12')),
        _version_column(),
        sa.CheckConstraint('hours_worked >= 0', name='ck_drivers_hours_worked_non_negative'),
        sa.CheckConstraint('hours_limit >= 0', name='ck_drivers_hours_limit_non_negative'),
        comment='Truck drivers',
    )
    op.create_index('ix_drivers_available', 'drivers', ['available'])

    op.create_table(
        'trucks',
        *_base_columns(),
        sa.Column('license_plate', sa.String(length=20), nullable=False, unique=True),
        sa.Column('capacity_tons', sa.Integer(), nullable=False, server_default=sa.text('30')),
        sa.Column('truck_type', sa.String(length=32), nullable=False, server_default='new'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='available'),
        sa.Column(
            'assigned_order_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'driver_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('drivers.id', ondelete='SET NULL'),
            nullable=True,
        ),
        _version_column(),
        sa.CheckConstraint('capacity_tons > 0', name='ck_trucks_capacity_positive'),
        comment='Fleet trucks',
    )
    op.create_index('ix_trucks_status', 'trucks', ['status'])

    op.create_table(
        'certificates',
        *_base_columns(),
        sa.Column('certificate_number', sa.String(length=50), nullable=False, unique=True),
        sa.Column('lot_number', sa.String(length=50), nullable=False),
        sa.Column(
            'order_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'truck_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('trucks.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('passed', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('test_date', sa.DateTime(timezone=True), nullable=True),
        comment='Quality certificates',
    )
    op.create_index('ix_certificates_order_id', 'certificates', ['order_id'])

    op.create_table(
        'qc_tests',
        *_base_columns(),
        sa.Column('lot_number', sa.String(length=50), nullable=False),
        sa.Column(
            'order_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column(
            'certificate_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('certificates.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column(
            'truck_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('trucks.id', ondelete='SET NULL'),
            nullable=True,
        ),
        comment='Quality control tests',
    )
    op.create_index('ix_qc_tests_order_status', 'qc_tests', ['order_id', 'status'])

    op.create_table(
        'deliveries',
        *_base_columns(),
        sa.Column(
            'order_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'truck_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('trucks.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column(
            'driver_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('drivers.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='assigned'),
        sa.Column('estimated_arrival', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_arrival', sa.DateTime(timezone=True), nullable=True),
        sa.Column('wait_time_minutes', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('checkpoints', JSON_DOCUMENT, nullable=False),
        sa.Column('gps_track', JSON_DOCUMENT, nullable=False),
        sa.Column('signature', JSON_DOCUMENT, nullable=True),
        _version_column(),
        sa.CheckConstraint('wait_time_minutes >= 0', name='ck_deliveries_wait_time_non_negative'),
        comment='Sand deliveries',
    )
    op.create_index('ix_deliveries_order_id', 'deliveries', ['order_id'])
    op.create_index('ix_deliveries_status_created', 'deliveries', ['status', 'created_at'])
    op.create_index(
        'uq_deliveries_active_truck',
        'deliveries',
        ['truck_id'],
        unique=True,
        postgresql_where=ACTIVE_DELIVERY,
        sqlite_where=ACTIVE_DELIVERY,
    )
    op.create_index(
        'uq_deliveries_active_driver',
        'deliveries',
        ['driver_id'],
        unique=True,
        postgresql_where=ACTIVE_DELIVERY,
        sqlite_where=ACTIVE_DELIVERY,
    )

    op.create_table(
        'delivery_status_history',
        *_base_columns(),
        sa.Column(
            'delivery_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('deliveries.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('from_status', sa.String(length=32), nullable=True),
        sa.Column('to_status', sa.String(length=32), nullable=False),
        sa.Column('change_reason', sa.String(length=500), nullable=True),
        sa.Column('metadata', JSON_DOCUMENT, nullable=False),
        comment='Delivery status audit trail',
    )
    op.create_index(
        'ix_delivery_status_history_delivery_id',
        'delivery_status_history',
        ['delivery_id'],
    )

    op.create_table(
        'invoices',
        *_base_columns(),
        sa.Column('invoice_number', sa.String(length=20), nullable=False, unique=True),
        sa.Column(
            'order_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='RESTRICT'),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            'customer_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('customers.id', ondelete='RESTRICT'),
            nullable=False,
        ),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('line_items', JSON_DOCUMENT, nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('tax', sa.Numeric(precision=12, scale=2), nullable=False, server_default=sa.text('0')),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('payment_status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('paid_date', sa.Date(), nullable=True),
        sa.Column('days_outstanding', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('attachments', JSON_DOCUMENT, nullable=False),
        sa.CheckConstraint('total >= 0', name='ck_invoices_total_non_negative'),
        sa.CheckConstraint('due_date >= issue_date', name='ck_invoices_due_after_issue'),
        comment='Customer invoices',
    )
    op.create_index('ix_invoices_customer_id', 'invoices', ['customer_id'])
    op.create_index('ix_invoices_payment_status', 'invoices', ['payment_status'])


def downgrade() -> None:
    """
    Downgrade database schema by removing every sandtrack table.

    Tables are dropped in reverse foreign key order.
    """
    op.drop_index('ix_invoices_payment_status', table_name='invoices')
    op.drop_index('ix_invoices_customer_id', table_name='invoices')
    op.drop_table('invoices')

    op.drop_index('ix_delivery_status_history_delivery_id', table_name='delivery_status_history')
    op.drop_table('delivery_status_history')

    op.drop_index('uq_deliveries_active_driver', table_name='deliveries')
    op.drop_index('uq_deliveries_active_truck', table_name='deliveries')
    op.drop_index('ix_deliveries_status_created', table_name='deliveries')
    op.drop_index('ix_deliveries_order_id', table_name='deliveries')
    op.drop_table('deliveries')

    op.drop_index('ix_qc_tests_order_status', table_name='qc_tests')
    op.drop_table('qc_tests')

    op.drop_index('ix_certificates_order_id', table_name='certificates')
    op.drop_table('certificates')

    op.drop_index('ix_trucks_status', table_name='trucks')
    op.drop_table('trucks')

    op.drop_index('ix_drivers_available', table_name='drivers')
    op.drop_table('drivers')

    op.drop_index('ix_orders_status_created', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_customer_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index(
        'ix_master_service_agreements_customer_id',
        table_name='master_service_agreements',
    )
    op.drop_table('master_service_agreements')

    op.drop_table('customers')
