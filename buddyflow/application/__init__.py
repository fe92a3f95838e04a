"""
Application layer.

The application layer orchestrates domain objects and defines the boundaries
of the engine. It contains the use cases a host (HTTP, GraphQL, CLI) calls
into, and the ports they depend on.

This layer contains:
- Use cases: assign a flow, drive its lifecycle, interact with components
- Services: snapshot persistence and the progress/unlock coordinator
- Protocols: repositories and best-effort collaborators
- Unit of work: the transaction boundary
"""
