"""
Sunny Video Backend: Services Layer
=====================================

Business rules between the routes (HTTP) and the database.

Service Inventory:
    - AuthService:         registration, login, bearer tokens, logout
    - UserService:         profile, rename, stats, account deletion
    - ContactService:      user search and the address book
    - MessageService:      send / list / open / play / delete / purge
    - VideoStorageService: blob validation, storage and removal
    - expiry_sweeper:      background purge of expired messages

Services take an AsyncSession per call and raise SunnyVideoError
subclasses; the global handlers in main.py turn those into HTTP errors.
"""
