"""Symbol Proxy.

Pass-through cache for debug symbol files. Requests for a symbol are
served from the local storage root when present, otherwise fetched from
the upstream symbol server, persisted, and served.
"""

__version__ = "0.1.0"
