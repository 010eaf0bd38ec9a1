"""
Workers Service package for the HR services platform.

Owns employee records and their time-clock logs. Other services treat
``GET /api/workers/{id}`` as the authoritative existence check for an
employee.

Structure:
- app.main: FastAPI app and routes.
- app.models: Request and response models.
- app.repository: Worker store.
- app.service: Business operations over the store.
"""
