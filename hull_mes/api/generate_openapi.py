import json
import os

from hull_mes.api.main import app

# Get the OpenAPI schema (note: all REST routes are under /api/v1)
openapi_schema = app.openapi()

# Document the caller-selected department override shared by stage actions and queues
openapi_schema["x-department-override"] = {
    "query": "departmentId",
    "applies_to": [
        "/api/v1/work-orders/start",
        "/api/v1/work-orders/pause",
        "/api/v1/work-orders/complete",
        "/api/v1/work-orders/{wo_id}",
        "/api/v1/work-orders/{wo_id}/versions",
        "/api/v1/work-orders/{wo_id}/events",
        "/api/v1/work-orders/{wo_id}/notes",
        "/api/v1/notes/{note_id}",
        "/api/v1/queues/my-department",
    ],
    "notes": "Overrides the caller's home department for the stage authorization check.",
}

# Write to file
output_dir = "interfaces"
os.makedirs(output_dir, exist_ok=True)
output_path = os.path.join(output_dir, "openapi.json")

with open(output_path, "w") as f:
    json.dump(openapi_schema, f, indent=2)
