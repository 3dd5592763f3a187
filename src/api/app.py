"""
API Module
---------
Provides the HTTP endpoints of the employee location tracker using FastAPI.
Features include:
- Manager login, logout and the protected dashboard
- Creating and listing employees
- Receiving location updates (with reverse geocoding) and stop-sharing requests
"""
from fastapi import APIRouter, FastAPI, HTTPException, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import time

from src.auth.credentials import CredentialsError, check_credentials
from src.auth.rate_limit import RateLimiter
from src.config import Settings, load_settings
from src.db.store import DuplicateEmployeeError, EmployeeNotFoundError, EmployeeStore, StoreError
from src.geocoding.nominatim import GeocodeCache
from src.models.employee import CreateEmployeeRequest, Employee, LocationUpdateRequest, StopSharingRequest
from src.services.location import LocationService, SharingConflictError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

WEB_DIR = Path(__file__).resolve().parent.parent / "web"
PUBLIC_DIR = WEB_DIR / "public"
VIEWS_DIR = WEB_DIR / "views"

router = APIRouter()


def get_store(request: Request) -> EmployeeStore:
    return request.app.state.store


def get_location_service(request: Request) -> LocationService:
    return request.app.state.location_service


def is_logged_in(request: Request) -> bool:
    return bool(request.session.get("logged_in"))


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_request_limit(request: Request):
    client = client_address(request)
    if not request.app.state.request_limiter.hit(client):
        logger.warning(f"Request rate limit exceeded for {client}")
        raise HTTPException(status_code=429, detail="Too many requests, please try again later.")


@router.get("/health")
def health(request: Request):
    return {"status": "OK", "uptime": time.monotonic() - request.app.state.started_at}


@router.get("/")
def login_page(request: Request):
    if is_logged_in(request):
        return RedirectResponse("/manager", status_code=302)
    return FileResponse(PUBLIC_DIR / "index.html")


@router.post("/login")
async def login(request: Request):
    settings = request.app.state.settings
    client = client_address(request)

    if not request.app.state.login_limiter.hit(client):
        logger.warning(f"Login rate limit exceeded for {client}")
        return PlainTextResponse("Too many login attempts. Try again later.", status_code=429)

    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            data = {}
    else:
        data = await request.form()
    if not hasattr(data, "get"):
        data = {}

    username = str(data.get("username") or "")
    password = str(data.get("password") or "")

    try:
        valid = await run_in_threadpool(check_credentials, settings.password_file, username, password)
    except CredentialsError as e:
        return PlainTextResponse(str(e), status_code=500)

    if not valid:
        logger.info(f"Failed login attempt: {username}")
        return RedirectResponse("/?error=1", status_code=303)

    request.session["logged_in"] = True
    logger.info(f"Manager logged in: {username}")
    return RedirectResponse("/manager", status_code=303)


@router.get("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/", status_code=302)


@router.get("/manager")
def manager_dashboard(request: Request):
    if not is_logged_in(request):
        logger.info("Unauthorized access attempt to /manager")
        return RedirectResponse("/", status_code=302)
    return FileResponse(VIEWS_DIR / "manager.html")


@router.get("/manager.html")
def block_manager_html():
    logger.info("Blocked direct access to /manager.html")
    return RedirectResponse("/", status_code=302)


@router.post("/create-employee")
def create_employee(payload: CreateEmployeeRequest, store: EmployeeStore = Depends(get_store)):
    try:
        store.create(Employee(id=payload.id, name=payload.name, email=payload.email))
        return {"success": True, "message": "Employee created"}
    except DuplicateEmployeeError:
        raise HTTPException(status_code=400, detail="Employee ID already exists")
    except StoreError as e:
        logger.error(f"Error creating employee {payload.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save employee")


@router.get("/employees")
def list_employees(store: EmployeeStore = Depends(get_store)):
    try:
        return [employee.to_json() for employee in store.all()]
    except StoreError as e:
        logger.error(f"Error retrieving employees: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to read employees")


@router.post("/update-location")
def update_location(payload: LocationUpdateRequest, service: LocationService = Depends(get_location_service)):
    try:
        city = service.update_location(payload.id, payload.latitude, payload.longitude)
        return {"success": True, "city": city}
    except EmployeeNotFoundError:
        raise HTTPException(status_code=404, detail="Employee ID not found")
    except SharingConflictError:
        raise HTTPException(status_code=409, detail="This ID is already being shared by someone else")
    except StoreError as e:
        logger.error(f"Error updating location for {payload.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save location")


@router.post("/stop-sharing")
def stop_sharing(payload: StopSharingRequest, service: LocationService = Depends(get_location_service)):
    try:
        service.stop_sharing(payload.id)
        return {"success": True}
    except StoreError as e:
        logger.error(f"Error stopping sharing for {payload.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to save changes")


@router.get("/employee-exists/{employee_id}")
def employee_exists(employee_id: str, service: LocationService = Depends(get_location_service)):
    try:
        return {"exists": service.exists(employee_id)}
    except StoreError as e:
        logger.error(f"Error checking employee {employee_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to read employees")


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{field}: {error.get('msg')}" if field else error.get("msg", "Invalid request"))
    return JSONResponse(status_code=400, content={"success": False, "message": "; ".join(problems)})


def create_app(settings: Settings = None, geocoder: GeocodeCache = None, clock=None) -> FastAPI:
    settings = settings or load_settings()
    logging.getLogger().setLevel(settings.log_level)

    store = EmployeeStore(settings.employees_file)
    if geocoder is None:
        geocoder = GeocodeCache(
            ttl=settings.geocode_ttl,
            timeout=settings.geocode_timeout,
            url=settings.nominatim_url,
            user_agent=settings.geocoder_user_agent,
        )

    service_options = {"clock": clock} if clock is not None else {}
    location_service = LocationService(
        store,
        geocoder,
        conflict_guard=settings.sharing_conflict_guard,
        conflict_window=settings.sharing_conflict_window,
        **service_options,
    )

    # Create the data directory and the employees file when the server starts
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.ensure_file()
        logger.info(f"Data directory configured: {settings.data_dir}")
        logger.info(f"employees.csv check: {'OK' if settings.employees_file.exists() else 'MISSING'}")
        logger.info(
            f"password.txt check: {'OK' if settings.password_file.exists() else 'MISSING (create it with main.py hash-password)'}"
        )
        if settings.uses_default_secret:
            logger.warning("SESSION_SECRET is not set; using an insecure default")
        yield

    app = FastAPI(
        title="Employee Location Tracker",
        description="Field employees share their location; managers see it on a dashboard",
        version="1.0.0",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.store = store
    app.state.geocoder = geocoder
    app.state.location_service = location_service
    app.state.login_limiter = RateLimiter(settings.login_max_attempts, settings.login_window)
    app.state.request_limiter = RateLimiter(settings.request_max_per_window, settings.request_window)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        same_site="lax",
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(router, dependencies=[Depends(enforce_request_limit)])
    # Mounted last so the routes above take precedence
    app.mount("/", StaticFiles(directory=PUBLIC_DIR), name="public")

    return app


app = create_app()
