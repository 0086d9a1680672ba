"""
Rental Kernel

Persistence-backed core of an equipment rental business:
- Serialized inventory units with a closed status set
- Date-range bookings with a loose lifecycle
- Interval-overlap availability per variant
- Unit release on return or cancellation
- Product catalog and sales orders
"""

__version__ = "0.1.0"
