"""
RMS Store DB — Django ORM implementation of the store collaborator.

Import DbStore from core.store_db.provider once Django is set up;
this package module stays import-safe before app loading.
"""
