import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from roadbook.auth import get_current_user
from roadbook.config import settings
from roadbook.errors import (
    InvalidInputError,
    NotFoundOrForbiddenError,
    RoadbookError,
    UpstreamUnavailableError,
)
from roadbook.models.enrichment import EnrichmentResult
from roadbook.models.geo import Coordinate, RouteResult
from roadbook.models.request import ComputeRouteRequest, EnrichRequest, SaveRouteRequest
from roadbook.models.response import (
    DeleteRouteResponse,
    ForwardGeocodeResponse,
    ReverseGeocodeResponse,
    SavedRouteList,
)
from roadbook.models.saved_route import SavedRoute
from roadbook.services.container import Services, build_services

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Roadbook API",
    description="Road trip waypoints, driving routes and place suggestions",
    version=settings.api_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_services: Optional[Services] = None


def get_services() -> Services:
    """Services are built once, on first use"""
    global _services
    if _services is None:
        _services = build_services(settings)
    return _services


def _http_error(exc: RoadbookError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    error = InvalidInputError("Invalid request")
    body = error.to_dict()
    body["errors"] = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg", "")} for e in exc.errors()
    ]
    return JSONResponse(status_code=error.status_code, content={"detail": body})


# geocoding
@app.get("/api/v1/geocoding/reverse", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    services: Services = Depends(get_services),
):
    """Address for a coordinate; falls back to the coordinate text"""
    address = await services.geocoder.reverse_geocode(Coordinate(lat=lat, lng=lng))
    return ReverseGeocodeResponse(address=address)


@app.get("/api/v1/geocoding/forward", response_model=ForwardGeocodeResponse)
async def forward_geocode(
    address: str = Query(..., min_length=1),
    services: Services = Depends(get_services),
):
    """First coordinate matching an address, or null"""
    coordinate = await services.geocoder.forward_geocode(address)
    return ForwardGeocodeResponse(address=address, coordinate=coordinate)


# routing
@app.post("/api/v1/routes/compute", response_model=RouteResult)
async def compute_route(
    request: ComputeRouteRequest, services: Services = Depends(get_services)
):
    """Driving route through the coordinates, in order"""
    try:
        return await services.route_computation.compute_route(request.coordinates)
    except RoadbookError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Route computation failed")
        raise HTTPException(
            status_code=500, detail=f"Route computation failed: {str(e)}"
        )


# enrichment
@app.post("/api/v1/enrichment", response_model=EnrichmentResult)
async def enrich_waypoints(
    request: EnrichRequest, services: Services = Depends(get_services)
):
    """Narratives and geocoded places of interest for each waypoint"""
    if services.orchestrator is None:
        raise _http_error(
            UpstreamUnavailableError("Language model is not configured", provider="openai")
        )
    try:
        return await services.orchestrator.enrich(request.waypoints)
    except RoadbookError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Enrichment failed")
        raise HTTPException(status_code=500, detail=f"Enrichment failed: {str(e)}")


# saved routes
@app.post("/api/v1/routes", response_model=SavedRoute, status_code=201)
async def save_route(
    request: SaveRouteRequest,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Save the itinerary for the authenticated user"""
    try:
        return services.bridge.save(
            request.waypoints, request.enrichment, request.name, owner_id
        )
    except RoadbookError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Saving route failed")
        raise HTTPException(status_code=500, detail=f"Saving route failed: {str(e)}")


@app.get("/api/v1/routes", response_model=SavedRouteList)
async def list_routes(
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """The authenticated user's routes, most recent first"""
    try:
        routes = services.bridge.list(owner_id)
        return SavedRouteList(routes=routes, total_count=len(routes))
    except Exception as e:
        logger.exception("Listing routes failed")
        raise HTTPException(status_code=500, detail=f"Listing routes failed: {str(e)}")


@app.get("/api/v1/routes/{route_id}", response_model=SavedRoute)
async def get_route(
    route_id: str,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    try:
        return services.bridge.get(route_id, owner_id)
    except RoadbookError as e:
        raise _http_error(e)
    except Exception as e:
        logger.exception("Loading route failed")
        raise HTTPException(status_code=500, detail=f"Loading route failed: {str(e)}")


@app.delete("/api/v1/routes/{route_id}", response_model=DeleteRouteResponse)
async def delete_route(
    route_id: str,
    owner_id: str = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    try:
        deleted = services.bridge.delete(route_id, owner_id)
    except Exception as e:
        logger.exception("Deleting route failed")
        raise HTTPException(status_code=500, detail=f"Deleting route failed: {str(e)}")
    if not deleted:
        raise _http_error(NotFoundOrForbiddenError("Route not found or not yours"))
    return DeleteRouteResponse()


@app.get("/health")
async def health_check():
    """Health check"""
    return {"status": "healthy", "version": settings.api_version}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
