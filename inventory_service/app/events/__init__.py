"""
Events module for the Inventory Service.

Producers:
    - InventoryEventProducer: publishes inventory.adjusted

Consumers:
    - InventoryEventConsumer: reads product and order topics with manual
      offset commits and idempotent processing
    - ProductCreatedHandler, ProductUpdatedHandler, ProductDeletedHandler,
      OrderFulfilledHandler: registered through build_handler_registry
"""
