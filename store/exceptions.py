# store/exceptions.py

class StoreError(Exception):
    pass


class PersistenceError(StoreError):
    pass
