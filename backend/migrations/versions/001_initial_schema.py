"""Initial MerchOps schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Vendors and aliases, PO headers / lines / shipments, quality records,
timeline milestones, projections (snapshots + active), vendor capacity
and staff.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    """Upgrade schema - create all engine tables."""
    op.create_table('vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('vendor_code', sa.String(length=64), nullable=True),
        sa.Column('merchandiser', sa.String(length=255), nullable=True),
        sa.Column('merchandising_manager', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vendors_id'), 'vendors', ['id'], unique=False)
    op.create_index(op.f('ix_vendors_name'), 'vendors', ['name'], unique=True)
    op.create_index(op.f('ix_vendors_vendor_code'), 'vendors', ['vendor_code'], unique=True)
    op.create_index(op.f('ix_vendors_merchandiser'), 'vendors', ['merchandiser'], unique=False)
    op.create_index(op.f('ix_vendors_merchandising_manager'), 'vendors', ['merchandising_manager'], unique=False)

    op.create_table('vendor_aliases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('alias', sa.String(length=255), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vendor_aliases_id'), 'vendor_aliases', ['id'], unique=False)
    op.create_index(op.f('ix_vendor_aliases_alias'), 'vendor_aliases', ['alias'], unique=True)

    op.create_table('po_headers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=True),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('client', sa.String(length=64), nullable=True),
        sa.Column('program_description', sa.String(length=255), nullable=True),
        sa.Column('collection', sa.String(length=100), nullable=True),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.Column('po_date', sa.Date(), nullable=True),
        sa.Column('original_ship_date', sa.Date(), nullable=True),
        sa.Column('revised_ship_date', sa.Date(), nullable=True),
        sa.Column('original_cancel_date', sa.Date(), nullable=True),
        sa.Column('revised_cancel_date', sa.Date(), nullable=True),
        sa.Column('revised_by', sa.String(length=64), nullable=True),
        sa.Column('revised_reason', sa.Text(), nullable=True),
        sa.Column('total_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('shipped_value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('shipment_status', sa.String(length=50), nullable=True),
        sa.Column('pts_number', sa.String(length=64), nullable=True),
        sa.Column('is_sample', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_excluded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('otd_status', sa.String(length=20), nullable=False, server_default='unknown'),
        sa.Column('original_otd_status', sa.String(length=20), nullable=False, server_default='unknown'),
        sa.Column('days_late', sa.Integer(), nullable=True),
        sa.Column('is_late', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_at_risk', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('at_risk_reasons', sa.JSON(), nullable=True),
        sa.Column('classified_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_po_headers_id'), 'po_headers', ['id'], unique=False)
    op.create_index(op.f('ix_po_headers_po_number'), 'po_headers', ['po_number'], unique=True)
    op.create_index(op.f('ix_po_headers_vendor_name'), 'po_headers', ['vendor_name'], unique=False)
    op.create_index(op.f('ix_po_headers_vendor_id'), 'po_headers', ['vendor_id'], unique=False)
    op.create_index(op.f('ix_po_headers_client'), 'po_headers', ['client'], unique=False)
    op.create_index(op.f('ix_po_headers_po_date'), 'po_headers', ['po_date'], unique=False)
    op.create_index(op.f('ix_po_headers_is_excluded'), 'po_headers', ['is_excluded'], unique=False)

    op.create_table('po_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=False),
        sa.Column('line_sequence', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('sku_description', sa.Text(), nullable=True),
        sa.Column('order_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_price', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('line_total', sa.BigInteger(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['po_number'], ['po_headers.po_number'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('po_number', 'line_sequence', name='uq_po_line_sequence')
    )
    op.create_index(op.f('ix_po_line_items_id'), 'po_line_items', ['id'], unique=False)
    op.create_index(op.f('ix_po_line_items_po_number'), 'po_line_items', ['po_number'], unique=False)
    op.create_index(op.f('ix_po_line_items_sku'), 'po_line_items', ['sku'], unique=False)

    op.create_table('shipments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=False),
        sa.Column('shipment_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('delivery_to_consolidator', sa.Date(), nullable=True),
        sa.Column('actual_sailing_date', sa.Date(), nullable=True),
        sa.Column('qty_shipped', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shipped_value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('pts_number', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['po_number'], ['po_headers.po_number'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('po_number', 'shipment_number', name='uq_shipment_po_sequence')
    )
    op.create_index(op.f('ix_shipments_id'), 'shipments', ['id'], unique=False)
    op.create_index(op.f('ix_shipments_po_number'), 'shipments', ['po_number'], unique=False)

    op.create_table('inspections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=True),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('vendor_name', sa.String(length=255), nullable=True),
        sa.Column('inspection_type', sa.String(length=64), nullable=False),
        sa.Column('inspection_date', sa.Date(), nullable=True),
        sa.Column('result', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', 'inspection_type', 'inspection_date', 'po_number',
                            name='uq_inspection_natural_key')
    )
    op.create_index(op.f('ix_inspections_id'), 'inspections', ['id'], unique=False)
    op.create_index(op.f('ix_inspections_po_number'), 'inspections', ['po_number'], unique=False)
    op.create_index(op.f('ix_inspections_sku'), 'inspections', ['sku'], unique=False)

    op.create_table('quality_tests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=True),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('test_type', sa.String(length=64), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=True),
        sa.Column('report_number', sa.String(length=64), nullable=True),
        sa.Column('result', sa.String(length=64), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', 'test_type', 'report_date', 'po_number',
                            name='uq_quality_test_natural_key')
    )
    op.create_index(op.f('ix_quality_tests_id'), 'quality_tests', ['id'], unique=False)
    op.create_index(op.f('ix_quality_tests_po_number'), 'quality_tests', ['po_number'], unique=False)
    op.create_index(op.f('ix_quality_tests_sku'), 'quality_tests', ['sku'], unique=False)

    op.create_table('po_timeline_milestones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=False),
        sa.Column('milestone', sa.String(length=64), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('planned_date', sa.Date(), nullable=True),
        sa.Column('revised_date', sa.Date(), nullable=True),
        sa.Column('actual_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('days_late', sa.Integer(), nullable=True),
        sa.Column('days_overdue', sa.Integer(), nullable=True),
        sa.Column('days_until', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['po_number'], ['po_headers.po_number'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('po_number', 'milestone', name='uq_po_milestone')
    )
    op.create_index(op.f('ix_po_timeline_milestones_id'), 'po_timeline_milestones', ['id'], unique=False)
    op.create_index(op.f('ix_po_timeline_milestones_po_number'), 'po_timeline_milestones', ['po_number'], unique=False)

    op.create_table('projection_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_code', sa.String(length=64), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('sku_description', sa.Text(), nullable=True),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.Column('collection', sa.String(length=100), nullable=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('projection_value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_type', sa.String(length=20), nullable=False, server_default='regular'),
        sa.Column('import_date', sa.Date(), nullable=False),
        sa.Column('imported_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_code', 'sku', 'year', 'month', 'import_date', name='uq_projection_snapshot')
    )
    op.create_index(op.f('ix_projection_snapshots_id'), 'projection_snapshots', ['id'], unique=False)
    op.create_index(op.f('ix_projection_snapshots_vendor_code'), 'projection_snapshots', ['vendor_code'], unique=False)
    op.create_index(op.f('ix_projection_snapshots_sku'), 'projection_snapshots', ['sku'], unique=False)
    op.create_index(op.f('ix_projection_snapshots_import_date'), 'projection_snapshots', ['import_date'], unique=False)

    op.create_table('active_projections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('snapshot_id', sa.Integer(), nullable=True),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('vendor_code', sa.String(length=64), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('sku_description', sa.Text(), nullable=True),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.Column('collection', sa.String(length=100), nullable=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('projection_value', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_type', sa.String(length=20), nullable=False, server_default='regular'),
        sa.Column('match_status', sa.String(length=20), nullable=False, server_default='unmatched'),
        sa.Column('matched_po_number', sa.String(length=64), nullable=True),
        sa.Column('matched_at', sa.DateTime(), nullable=True),
        sa.Column('actual_quantity', sa.Integer(), nullable=True),
        sa.Column('actual_value', sa.BigInteger(), nullable=True),
        sa.Column('quantity_variance', sa.Integer(), nullable=True),
        sa.Column('value_variance', sa.BigInteger(), nullable=True),
        sa.Column('variance_pct', sa.Float(), nullable=True),
        sa.Column('is_manual', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('commented_at', sa.DateTime(), nullable=True),
        sa.Column('commented_by', sa.String(length=255), nullable=True),
        sa.Column('last_snapshot_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['snapshot_id'], ['projection_snapshots.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_code', 'sku', 'year', 'month', name='uq_active_projection')
    )
    op.create_index(op.f('ix_active_projections_id'), 'active_projections', ['id'], unique=False)
    op.create_index(op.f('ix_active_projections_vendor_id'), 'active_projections', ['vendor_id'], unique=False)
    op.create_index(op.f('ix_active_projections_vendor_code'), 'active_projections', ['vendor_code'], unique=False)
    op.create_index(op.f('ix_active_projections_sku'), 'active_projections', ['sku'], unique=False)
    op.create_index(op.f('ix_active_projections_match_status'), 'active_projections', ['match_status'], unique=False)
    op.create_index(op.f('ix_active_projections_matched_po_number'), 'active_projections', ['matched_po_number'], unique=False)

    op.create_table('vendor_capacity_data',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('vendor_code', sa.String(length=64), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=True),
        sa.Column('client', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('shipment_confirmed', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('shipment_unconfirmed', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_shipment', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('projections', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('reserved_capacity', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('factory_overall_capacity', sa.BigInteger(), nullable=True),
        sa.Column('balance', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('utilized_capacity_pct', sa.Float(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('is_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('import_date', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        *_timestamps(),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_code', 'year', 'month', 'client', name='uq_capacity_vendor_month_client')
    )
    op.create_index(op.f('ix_vendor_capacity_data_id'), 'vendor_capacity_data', ['id'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_data_vendor_id'), 'vendor_capacity_data', ['vendor_id'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_data_vendor_code'), 'vendor_capacity_data', ['vendor_code'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_data_year'), 'vendor_capacity_data', ['year'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_data_is_locked'), 'vendor_capacity_data', ['is_locked'], unique=False)

    op.create_table('vendor_capacity_summary',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('vendor_code', sa.String(length=64), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_shipment_annual', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_projection_annual', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_reserved_capacity_annual', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('avg_utilization_pct', sa.Float(), nullable=True),
        sa.Column('is_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('import_date', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        *_timestamps(),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_code', 'year', name='uq_capacity_summary_vendor_year')
    )
    op.create_index(op.f('ix_vendor_capacity_summary_id'), 'vendor_capacity_summary', ['id'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_summary_vendor_id'), 'vendor_capacity_summary', ['vendor_id'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_summary_vendor_code'), 'vendor_capacity_summary', ['vendor_code'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_summary_year'), 'vendor_capacity_summary', ['year'], unique=False)
    op.create_index(op.f('ix_vendor_capacity_summary_is_locked'), 'vendor_capacity_summary', ['is_locked'], unique=False)

    op.create_table('staff',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='individual'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_staff_id'), 'staff', ['id'], unique=False)
    op.create_index(op.f('ix_staff_name'), 'staff', ['name'], unique=True)


def downgrade() -> None:
    """Downgrade schema - drop all engine tables."""
    for table in (
        'staff',
        'vendor_capacity_summary',
        'vendor_capacity_data',
        'active_projections',
        'projection_snapshots',
        'po_timeline_milestones',
        'quality_tests',
        'inspections',
        'shipments',
        'po_line_items',
        'po_headers',
        'vendor_aliases',
        'vendors',
    ):
        op.drop_table(table)
