"""Process-wide history instance used by the HTTP service.

Embedders that drive `CommandHistory` directly do not need anything from here.
"""
