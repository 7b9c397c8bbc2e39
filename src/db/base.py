"""
Declarative base
"""
from enum import Enum
from sqlalchemy.orm import declarative_base
from sqlalchemy import BigInteger, Integer
from datetime import date, datetime
from decimal import Decimal

Base = declarative_base()

# BIGINT primary keys only autoincrement on SQLite when declared as INTEGER
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")


class BaseModel(Base):
    """Base model"""
    __abstract__ = True
    
    def to_json(self):
        """Model as a JSON-serialisable dict"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, (datetime, date)):
                result[column.name] = value.isoformat()
            elif isinstance(value, Decimal):
                result[column.name] = float(value)
            elif isinstance(value, Enum):
                result[column.name] = value.value
            else:
                result[column.name] = value
        return result
