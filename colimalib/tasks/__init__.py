"""
Higher-level methods to set up services.

Each public function in this module should:

- perform a complete task, as needed by a script or user action
- avoid non-idempotent calls unless required by a prior state change
- take the configuration and porcelain to use as arguments, and pass them on to plumbing
"""
