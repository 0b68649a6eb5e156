# app/db/models/__init__.py

from app.db.session import Base  # noqa: F401

from app.db.models.production_log import ProductionLog  # noqa: F401
from app.db.models.efficiency_metric import EfficiencyMetric  # noqa: F401
