from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from app.config import get_settings

settings = get_settings()

# SQLite needs different config than PostgreSQL
if settings.database_url.startswith("sqlite"):
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},  # Needed for SQLite
        poolclass=StaticPool if settings.database_url in ("sqlite://", "sqlite:///:memory:") else None,
    )

    # pysqlite defers BEGIN, which breaks SAVEPOINT; emit it ourselves
    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")
else:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db():
    """Dependency for getting database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DEFAULT_FEATURE_FLAGS = [
    # (feature_key, feature_name, category, is_enabled)
    ("premium_super_likes", "Super Likes", "premium", True),
    ("premium_boosts", "Boosts", "premium", True),
    ("premium_rewinds", "Rewinds", "premium", True),
    ("premium_who_likes_me", "Quién me dio like", "premium", True),
    ("premium_hot_section", "Sección Hot", "premium", True),
    ("premium_priority_ranking", "Ranking prioritario", "premium", False),
    ("trading_auctions", "Subastas", "trading", True),
    ("trading_circular", "Truekes circulares", "trading", True),
    ("gamification_missions", "Misiones", "gamification", True),
    ("gamification_achievements", "Logros", "gamification", True),
]


def init_db():
    """Initialize database tables and seed default data."""
    import app.models  # noqa: F401  (registers all tables on Base.metadata)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_defaults(db)
    finally:
        db.close()


def seed_defaults(db):
    """Seed feature flags and premium plans if none exist."""
    from app.models import FeatureFlag, PremiumPlan

    if db.query(FeatureFlag).count() == 0:
        print("Seeding default feature flags...")
        for key, name, category, enabled in DEFAULT_FEATURE_FLAGS:
            db.add(FeatureFlag(
                feature_key=key,
                feature_name=name,
                category=category,
                is_enabled=enabled,
            ))
        db.commit()
        print(f"Seeded {len(DEFAULT_FEATURE_FLAGS)} feature flags")

    if db.query(PremiumPlan).count() == 0:
        print("Seeding default premium plans...")
        default_plans = [
            PremiumPlan(name="Plus", price=4.99, super_likes_per_day=5, boosts_per_month=1,
                        rewinds_per_day=5, can_see_likes=True, priority_in_hot=False),
            PremiumPlan(name="Pro", price=9.99, super_likes_per_day=15, boosts_per_month=5,
                        rewinds_per_day=20, can_see_likes=True, priority_in_hot=True),
        ]
        for plan in default_plans:
            db.add(plan)
        db.commit()
        print(f"Seeded {len(default_plans)} premium plans")
