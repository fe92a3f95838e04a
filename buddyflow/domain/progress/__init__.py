"""Progress domain layer: learner progress and the component interaction engine."""
