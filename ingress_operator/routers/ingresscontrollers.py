"""
Status API routes — read-only views over IngressControllers and the ClusterOperator.

Nothing here writes to the cluster; the operator's reconciler is the only writer.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import settings
from ..errors import NotFoundError, TransientStoreError
from ..models import (
    Condition,
    EndpointPublishingStrategy,
    ErrorResponse,
    IngressControllerListResponse,
    IngressControllerResponse,
    OperatorStatusResponse,
)
from ..resources import (
    CLUSTER_OPERATOR_KIND,
    CLUSTER_OPERATOR_NAME,
    CONFIG_API_VERSION,
    INGRESS_API_VERSION,
    INGRESS_FINALIZER,
    INGRESS_KIND,
    conditions_of,
    finalizers_of,
    is_terminating,
)
from ..services.object_store import ObjectStore

logger = logging.getLogger("ingress-operator.api")

router = APIRouter(prefix="/ingresscontrollers", tags=["ingresscontrollers"])
status_router = APIRouter(tags=["status"])


def get_store(request: Request) -> ObjectStore:
    return request.app.state.store


def _parse_ingress_controller(item: dict) -> IngressControllerResponse:
    """Convert a raw IngressController dict into a response model."""
    spec = item.get("spec") or {}
    status = item.get("status") or {}
    strategy = status.get("endpointPublishingStrategy")
    return IngressControllerResponse(
        name=item["metadata"]["name"],
        namespace=item["metadata"].get("namespace", ""),
        requestedDomain=spec.get("domain"),
        domain=status.get("domain") or None,
        endpointPublishingStrategy=EndpointPublishingStrategy(type=strategy["type"]) if strategy else None,
        replicas=spec.get("replicas"),
        availableReplicas=status.get("availableReplicas", 0),
        finalized=INGRESS_FINALIZER in finalizers_of(item),
        terminating=is_terminating(item),
        conditions=[Condition(**c) for c in conditions_of(item)],
    )


def _unavailable(what: str, e: Exception) -> HTTPException:
    logger.error(f"Failed to read {what}: {e}")
    return HTTPException(status_code=503, detail=f"Failed to read {what}: {e}")


# =========================================================================
# IngressControllers
# =========================================================================

@router.get("", response_model=IngressControllerListResponse)
def list_ingresscontrollers(store: ObjectStore = Depends(get_store)):
    """List IngressControllers in the operator namespace."""
    try:
        items = store.list(INGRESS_API_VERSION, INGRESS_KIND, namespace=settings.OPERATOR_NAMESPACE)
    except TransientStoreError as e:
        raise _unavailable("ingresscontrollers", e)
    ingresscontrollers = sorted((_parse_ingress_controller(i) for i in items), key=lambda ic: ic.name)
    return IngressControllerListResponse(ingresscontrollers=ingresscontrollers, total=len(ingresscontrollers))


@router.get("/{name}", response_model=IngressControllerResponse,
            responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
def get_ingresscontroller(name: str, store: ObjectStore = Depends(get_store)):
    """Get one IngressController by name."""
    try:
        item = store.get(INGRESS_API_VERSION, INGRESS_KIND, name, settings.OPERATOR_NAMESPACE)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"IngressController '{name}' not found")
    except TransientStoreError as e:
        raise _unavailable(f"ingresscontroller {name}", e)
    return _parse_ingress_controller(item)


# =========================================================================
# Operator status
# =========================================================================

@status_router.get("/operator-status", response_model=OperatorStatusResponse,
                   responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}})
def get_operator_status(store: ObjectStore = Depends(get_store)):
    """The ClusterOperator status the operator publishes."""
    try:
        co = store.get(CONFIG_API_VERSION, CLUSTER_OPERATOR_KIND, CLUSTER_OPERATOR_NAME)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=f"ClusterOperator '{CLUSTER_OPERATOR_NAME}' not found")
    except TransientStoreError as e:
        raise _unavailable("clusteroperator", e)
    status = co.get("status") or {}
    return OperatorStatusResponse(
        name=co["metadata"]["name"],
        conditions=[Condition(**c) for c in status.get("conditions") or []],
        versions=status.get("versions") or [],
        relatedObjects=status.get("relatedObjects") or [],
    )
