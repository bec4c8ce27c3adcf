from fastapi import Depends
from sqlalchemy.orm import Session

from app.dependencies.db import get_db
from app.services.query_service import AggregationEngine
from app.services.token_service import TokenService


def get_token_service(db: Session = Depends(get_db)) -> TokenService:
    return TokenService(db)


def get_aggregation_engine(db: Session = Depends(get_db)) -> AggregationEngine:
    return AggregationEngine(db)
