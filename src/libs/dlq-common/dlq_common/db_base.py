# src/libs/dlq-common/dlq_common/db_base.py
from sqlalchemy.orm import declarative_base

Base = declarative_base()
