# Services package init
"""
Shelfmark Backend: Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and the document store.
How:   Services accept domain objects (app.models.book.Book), talk to MongoDB,
       and return domain objects, booleans or None.

Service Inventory:
    - BookService: upsert / partial upsert / soft delete / restore / reads

The service instance is created in the application lifespan with an explicit
collection provider and reached by routes through `request.app.state`.
"""
