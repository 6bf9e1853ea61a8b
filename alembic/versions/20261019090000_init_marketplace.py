from alembic import op
import sqlalchemy as sa

revision='20261019090000'
down_revision=None

def upgrade():
    op.create_table('profiles', sa.Column('id', sa.String(36), primary_key=True), sa.Column('user_id', sa.String(36), nullable=False, unique=True), sa.Column('full_name', sa.String(120)), sa.Column('store_name', sa.String(100)), sa.Column('phone', sa.String(32)), sa.Column('pickup_address_line', sa.String(255)), sa.Column('city', sa.String(120)), sa.Column('state', sa.String(120)), sa.Column('zip_code', sa.String(20)), sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')), sa.Column('approval_status', sa.String(16)), sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()))
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'])
    op.create_table('user_roles', sa.Column('id', sa.Integer(), primary_key=True), sa.Column('user_id', sa.String(36), nullable=False, unique=True), sa.Column('role', sa.String(16), nullable=False))
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])
    op.create_table('products', sa.Column('id', sa.String(36), primary_key=True), sa.Column('vendor_id', sa.String(36), nullable=False), sa.Column('name', sa.String(200), nullable=False), sa.Column('description', sa.Text()), sa.Column('price', sa.Numeric(12, 2), nullable=False), sa.Column('category', sa.String(64), nullable=False, server_default='General'), sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'), sa.Column('images', sa.JSON(), nullable=False, server_default='[]'), sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')), sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()), sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()), sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_nonnegative'))
    op.create_index('ix_products_vendor_id', 'products', ['vendor_id'])
    op.create_table('cart_items', sa.Column('id', sa.String(36), primary_key=True), sa.Column('user_id', sa.String(36), nullable=False), sa.Column('product_id', sa.String(36), nullable=False), sa.Column('vendor_id', sa.String(36), nullable=False), sa.Column('quantity', sa.Integer(), nullable=False), sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()))
    op.create_index('ix_cart_items_user_id', 'cart_items', ['user_id'])
    op.create_table('orders', sa.Column('id', sa.String(36), primary_key=True), sa.Column('user_id', sa.String(36), nullable=False), sa.Column('vendor_id', sa.String(36), nullable=False), sa.Column('status', sa.String(32), nullable=False, server_default='pending'), sa.Column('total_amount', sa.Numeric(12, 2), nullable=False), sa.Column('delivery_address', sa.String(500), nullable=False), sa.Column('vendor_address_snapshot', sa.String(500)), sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()), sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()))
    op.create_index('ix_orders_user_id', 'orders', ['user_id']); op.create_index('ix_orders_vendor_id', 'orders', ['vendor_id']); op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_table('order_items', sa.Column('id', sa.String(36), primary_key=True), sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False), sa.Column('position', sa.Integer(), nullable=False, server_default='0'), sa.Column('product_id', sa.String(36), nullable=False), sa.Column('product_name', sa.String(200), nullable=False), sa.Column('product_price', sa.Numeric(12, 2), nullable=False), sa.Column('quantity', sa.Integer(), nullable=False))
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

def downgrade():
    op.drop_table('order_items'); op.drop_table('orders'); op.drop_table('cart_items'); op.drop_table('products'); op.drop_table('user_roles'); op.drop_table('profiles')
