from models.user import User
from models.table_management import Table
from models.menu_management import MenuItem
from models.order_management import Order, OrderItem
from models.billing import Bill

# Register all models
__all__ = ['User', 'Table', 'MenuItem', 'Order', 'OrderItem', 'Bill']
