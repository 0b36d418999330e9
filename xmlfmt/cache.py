"""
Cache of compiled templates.
"""

import threading
from collections import OrderedDict


########################################################################################################################################################

class LRUCache:
    """
    Thread-safe mapping of a limited size that evicts the least recently used entries when full.
    maxsize=0 disables caching: set() does nothing and get() always misses.
    """
    maxsize = None
    _data   = None      # OrderedDict of {key: value}, most recently used at the end
    _lock   = None

    def __init__(self, maxsize = 128):
        assert maxsize >= 0
        self.maxsize = maxsize
        self._data = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key, default = None):
        with self._lock:
            if key not in self._data: return default
            self._data.move_to_end(key)
            return self._data[key]

    def set(self, key, value):
        if not self.maxsize: return
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                self._data.popitem(last = False)

    def clear(self):
        with self._lock:
            self._data.clear()

    def __len__(self):
        with self._lock:
            return len(self._data)

    def __contains__(self, key):
        with self._lock:
            return key in self._data
