"""
Payroll Service package for the HR services platform.

Computes monthly payrolls from data owned by the workers and benefits
services and stores one payroll per employee, month and year.

Structure:
- app.main: FastAPI app and routes.
- app.calculator: Salary parsing, overtime, INSS, IRRF, FGTS and benefit discounts.
- app.clients: Lookups against the workers and benefits services.
- app.repository: In-memory and PostgreSQL payroll stores.
- app.service: Single and monthly payroll processing.
"""
