"""
Persistence layer: the DBStorage singleton used by the API, plus the
refresh-token session store.
"""
from models.db_storage import DBStorage

storage = DBStorage()
