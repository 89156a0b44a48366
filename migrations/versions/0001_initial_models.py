"""portal baseline

Creates the user, profile, questionnaire, analysis, appointment, record and
log tables from the SQLModel metadata. Tables that already exist are skipped,
so databases bootstrapped by init_db() can be stamped onto this revision.

"""
from typing import Sequence, Union

from alembic import op
from sqlmodel import SQLModel

import careportal.models  # noqa: F401

revision: str = "0001_initial_models"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    SQLModel.metadata.create_all(bind=op.get_bind(), checkfirst=True)


def downgrade() -> None:
    SQLModel.metadata.drop_all(bind=op.get_bind(), checkfirst=True)
