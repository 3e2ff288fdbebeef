from duobudget.stores.factory import create_store, register
from duobudget.stores.firestore import FirestoreStore
from duobudget.stores.memory import MemoryStore

__all__ = ["FirestoreStore", "MemoryStore", "create_store", "register"]
