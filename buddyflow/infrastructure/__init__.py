"""
Infrastructure layer.

Implementations of the ports defined in the application layer:

- Persistence (SQLAlchemy repositories, mappers, unit of work)
- Outbound side channels (notifications, achievements)

This layer depends on domain and application layers,
but they do not depend on it.
"""
