from protean.domain import Domain
from sqlalchemy import create_engine


def setup_db(domain: Domain):
    """Create RDBMS tables for every SQL-backed provider of the domain.

    Event-sourced aggregates live in the event store; only plain aggregates
    (the order number sequence) and projections need tables.
    """
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] not in ("sqlite", "postgresql"):
                continue

            engine = create_engine(provider.conn_info["database_uri"])

            # Touch each repository's DAO so the model is registered with
            # the provider's SQLAlchemy metadata before create_all().
            for _, aggregate_record in domain.registry.aggregates.items():
                if aggregate_record.cls.meta_.provider == provider.name:
                    domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

            for _, entity_record in domain.registry.entities.items():
                if entity_record.cls.meta_.provider == provider.name:
                    domain.repository_for(entity_record.cls)._dao  # noqa: B018

            for _, projection_record in domain.registry.projections.items():
                if projection_record.cls.meta_.provider == provider.name:
                    domain.repository_for(projection_record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop RDBMS tables for every SQL-backed provider of the domain."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in ("sqlite", "postgresql"):
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
