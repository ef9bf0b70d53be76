"""
Pydantic models for status API responses.
"""
from pydantic import BaseModel
from typing import Optional, List


class Condition(BaseModel):
    type: str
    status: str
    reason: str = ""
    message: str = ""
    lastTransitionTime: Optional[str] = None


class EndpointPublishingStrategy(BaseModel):
    type: str


class IngressControllerResponse(BaseModel):
    """One IngressController as the operator sees it."""
    name: str
    namespace: str
    requestedDomain: Optional[str] = None
    domain: Optional[str] = None
    endpointPublishingStrategy: Optional[EndpointPublishingStrategy] = None
    replicas: Optional[int] = None
    availableReplicas: int = 0
    finalized: bool = False
    terminating: bool = False
    conditions: List[Condition] = []


class IngressControllerListResponse(BaseModel):
    ingresscontrollers: List[IngressControllerResponse]
    total: int


class OperandVersion(BaseModel):
    name: str
    version: str


class RelatedObject(BaseModel):
    group: str = ""
    resource: str
    namespace: Optional[str] = None
    name: str = ""


class OperatorStatusResponse(BaseModel):
    name: str
    conditions: List[Condition] = []
    versions: List[OperandVersion] = []
    relatedObjects: List[RelatedObject] = []


class ErrorResponse(BaseModel):
    detail: str
