"""
Finished-goods inventory.

Models:
- InventoryItem (one lot of packaged product, created by a packaging run)
- InventoryMovement (append-only deltas that update InventoryItem.current_quantity)
"""
