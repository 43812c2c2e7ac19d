"""Infrastructure layer: configuration, engines and SQLAlchemy persistence."""
