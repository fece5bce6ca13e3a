from typing import Annotated
from fastapi import Depends, Request

from safar_suraksha.config import Settings
from safar_suraksha.core.emergency_alert import AlertBroadcaster
from safar_suraksha.core.geofencing import ZoneRegistry
from safar_suraksha.core.ledger import LedgerRegistrar
from safar_suraksha.core.scoring import SafetyScorer

# Long-lived collaborators are built by the application lifespan and kept on
# app.state; handlers receive them through these dependencies.

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_zone_registry(request: Request) -> ZoneRegistry:
    return request.app.state.zone_registry

def get_scorer(request: Request) -> SafetyScorer:
    return request.app.state.scorer

def get_broadcaster(request: Request) -> AlertBroadcaster:
    return request.app.state.broadcaster

def get_registrar(request: Request) -> LedgerRegistrar:
    return request.app.state.registrar

SettingsDep = Annotated[Settings, Depends(get_settings)]
ZoneRegistryDep = Annotated[ZoneRegistry, Depends(get_zone_registry)]
ScorerDep = Annotated[SafetyScorer, Depends(get_scorer)]
BroadcasterDep = Annotated[AlertBroadcaster, Depends(get_broadcaster)]
RegistrarDep = Annotated[LedgerRegistrar, Depends(get_registrar)]
