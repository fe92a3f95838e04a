"""
Domain layer.

The domain layer contains the core business logic of the learning flow
engine. It has no dependencies on persistence or transport.

This layer contains:
- Entities: flows, snapshots, assignments, progress
- Value Objects: identifiers, content hashes, watched segments
- Aggregate Roots: assignment and progress consistency boundaries
- Domain Services: snapshot building and component interaction handlers
"""
