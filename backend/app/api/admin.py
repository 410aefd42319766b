from fastapi import APIRouter, Depends

from app.dependencies import get_transfer_service
from app.middlewares.rbac import require_roles
from app.schemas.admin import AlertListResponse, RiskRule, RiskRulesResponse
from app.services.alert_service import get_alerts
from app.services.transfer_service import TransferService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/fraud-alerts", response_model=AlertListResponse)
async def get_fraud_alerts(claims: dict = Depends(require_roles("admin"))):
    alerts = [
        {
            "id": i,
            "alertType": a["event_type"],
            "description": a["details"],
            "severity": "high" if a["event_type"] in ("high_risk_transaction", "fraud_reported") else "medium",
            "createdAt": a["created_at"],
        }
        for i, a in enumerate(get_alerts())
    ]
    return AlertListResponse(alerts=alerts)


@router.get("/risk-rules", response_model=RiskRulesResponse)
async def get_risk_rules(claims: dict = Depends(require_roles("admin")), service: TransferService = Depends(get_transfer_service)):
    return RiskRulesResponse(rules=[RiskRule(rule=k, value=v) for k, v in service.rules.items()])
