from pydantic import BaseModel
from typing import List, Dict, Any

class AlertListResponse(BaseModel):
    alerts: List[Dict[str, Any]]

class RiskRule(BaseModel):
    rule: str
    value: Any

class RiskRulesResponse(BaseModel):
    rules: List[RiskRule]
