# Models package — import all models here so Alembic can discover them.

from design_desk.models.design_request import DesignRequest  # noqa: F401
