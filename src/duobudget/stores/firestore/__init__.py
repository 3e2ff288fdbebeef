from duobudget.stores.firestore.store import FirestoreStore

__all__ = ["FirestoreStore"]
