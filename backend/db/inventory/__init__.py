"""
Inventory tables.

Models:
- InventoryItem (stock counter + optional own low-stock threshold)
- InventoryCategory (keyed by name, optional category threshold)
- InventoryLocation (location tree) / InventoryStockLocation (quantity per item per location)
- InventoryActivity (append-only audit trail of item changes)
"""
