from .catalog import User, Product, Truck, Shop, USER_ROLES
from .inventory import WarehouseStock, Delivery, DeliveryLine, TruckLoad, TruckLoadLine
from .sales import Sale, SaleLine, Payment, SALE_STATUS_PENDING, SALE_STATUS_PAID, SALE_STATUSES
from .allowances import Allowance, TruckAllowance

__all__ = [
    'User', 'Product', 'Truck', 'Shop', 'USER_ROLES',
    'WarehouseStock', 'Delivery', 'DeliveryLine', 'TruckLoad', 'TruckLoadLine',
    'Sale', 'SaleLine', 'Payment', 'SALE_STATUS_PENDING', 'SALE_STATUS_PAID', 'SALE_STATUSES',
    'Allowance', 'TruckAllowance',
]
