"""
API route modules.

This package contains subrouters for:
- Work orders: lifecycle actions, detail, history
- Queues: department work queues
- Routing definitions: authoring and release

Routers are included from hull_mes.api.main (under the /api/v1 prefix).
"""
