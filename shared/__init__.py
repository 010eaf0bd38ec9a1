"""
Shared utilities for the HR services platform.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and the uniform error envelope
- identity: Identity headers attached by the gateway
- retry: Retry helpers with backoff
- circuit_breaker: Resilient external call protection
- service_client: HTTP client for service-to-service lookups
- consistency: Foreign reference checks across services
- models: camelCase pydantic base for wire payloads
- base_service: FastAPI scaffold shared by every service

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
