from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'products',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('price >= 0', name='ck_products_price_non_negative'),
    )
    op.create_index('ix_products_sku', 'products', ['sku'], unique=True)

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_locations_name', 'locations', ['name'], unique=True)

    op.create_table(
        'stock',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('location_id', sa.Integer, sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('product_id', 'location_id', name='uq_stock_product_location'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
    )
    op.create_index('ix_stock_location_id', 'stock', ['location_id'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_location_id', sa.Integer, sa.ForeignKey('locations.id'), nullable=True),
        sa.Column('to_location_id', sa.Integer, sa.ForeignKey('locations.id'), nullable=True),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('movement_type', sa.String(50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('quantity > 0', name='ck_stock_movements_quantity_positive'),
        sa.CheckConstraint(
            "(movement_type = 'ADD' AND from_location_id IS NULL AND to_location_id IS NOT NULL)"
            " OR (movement_type = 'REMOVE' AND from_location_id IS NOT NULL AND to_location_id IS NULL)"
            " OR (movement_type = 'MOVE' AND from_location_id IS NOT NULL AND to_location_id IS NOT NULL"
            " AND from_location_id <> to_location_id)",
            name='ck_stock_movements_locations_match_type',
        ),
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])

def downgrade():
    op.drop_table('stock_movements')
    op.drop_table('stock')
    op.drop_table('locations')
    op.drop_table('products')
