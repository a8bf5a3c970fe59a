from fastapi import FastAPI, APIRouter, Depends, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Optional, Callable
from contextlib import asynccontextmanager
from datetime import timedelta
from bson.errors import InvalidId
from pymongo.errors import PyMongoError
import stripe
import asyncio
import time

from config import Settings
from mongodb_manager import MongoDBManager
from payments import StripePayments, PaymentNotConfiguredError, InvalidAmountError
from security import create_access_token
from schemas import (
    TokenRequest,
    TokenResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    UserUpsertRequest,
    ClassRequest,
    ClassReviewRequest,
    AssignmentRequest,
    EnrollmentRequest,
    InsertResultResponse,
    UpdateResultResponse,
    DeleteResultResponse,
)

# ==================== MIDDLEWARE ====================

class TimeoutMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce request timeouts
    Prevents requests from hanging indefinitely on a stuck database or Stripe call
    """

    def __init__(self, app, timeout: int = 30):
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()

        try:
            response = await asyncio.wait_for(
                call_next(request),
                timeout=self.timeout
            )

            duration = time.time() - start_time
            if duration > 5:
                print(f"⚠️ Slow request: {request.method} {request.url.path} took {duration:.2f}s")

            return response

        except asyncio.TimeoutError:
            duration = time.time() - start_time
            print(f"⏱️ Request timeout: {request.method} {request.url.path} after {duration:.2f}s")

            return error_response(
                request,
                504,
                f"Request timeout - operation took longer than {self.timeout} seconds",
                "GATEWAY_TIMEOUT",
            )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all requests with timing"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        print(f"📥 {request.method} {request.url.path}")

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            status_icon = "✅" if response.status_code < 400 else "❌"
            print(f"{status_icon} {request.method} {request.url.path} - {response.status_code} ({duration:.2f}s)")

            response.headers["X-Process-Time"] = f"{duration:.4f}"
            return response

        except Exception as e:
            duration = time.time() - start_time
            print(f"❌ {request.method} {request.url.path} - ERROR ({duration:.2f}s): {str(e)}")
            raise

# ==================== ERROR HANDLING ====================

def error_response(request: Request, status_code: int, detail: str, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "error": error,
            "path": str(request.url.path),
            "method": request.method
        }
    )


async def invalid_id_handler(request: Request, exc: InvalidId):
    return error_response(request, 400, f"Invalid id: {exc}", "INVALID_ID")


async def invalid_amount_handler(request: Request, exc: InvalidAmountError):
    return error_response(request, 400, str(exc), "INVALID_AMOUNT")


async def payment_not_configured_handler(request: Request, exc: PaymentNotConfiguredError):
    print(f"❌ {exc}")
    return error_response(request, 503, "Payments are not configured", "PAYMENT_NOT_CONFIGURED")


async def stripe_error_handler(request: Request, exc: stripe.error.StripeError):
    return error_response(
        request,
        502,
        getattr(exc, "user_message", None) or "Payment provider error",
        "PAYMENT_PROVIDER_ERROR",
    )


async def database_error_handler(request: Request, exc: PyMongoError):
    print(f"❌ Database error on {request.method} {request.url.path}: {exc}")
    return error_response(request, 503, "Database unavailable", "DATABASE_ERROR")


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(InvalidAmountError, invalid_amount_handler)
    app.add_exception_handler(PaymentNotConfiguredError, payment_not_configured_handler)
    app.add_exception_handler(stripe.error.StripeError, stripe_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)

# ==================== DEPENDENCIES ====================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> MongoDBManager:
    return request.app.state.db


def get_payments(request: Request) -> StripePayments:
    return request.app.state.payments


router = APIRouter()

# ==================== GENERAL ENDPOINTS ====================

@router.get("/", response_class=PlainTextResponse)
def read_root():
    return "Welcome to EduElevate server"


@router.get("/stats")
def get_stats(db: MongoDBManager = Depends(get_db)):
    """Get database statistics"""
    return db.get_database_stats()

# ==================== AUTH / PAYMENT ENDPOINTS ====================

@router.post("/jwt", response_model=TokenResponse)
def issue_token(claims: TokenRequest, settings: Settings = Depends(get_settings)):
    """Sign whatever claims the client sends (typically {email})"""
    token = create_access_token(
        claims.model_dump(),
        settings.secret_key,
        algorithm=settings.algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return {"token": token}


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
def create_payment_intent(request: PaymentIntentRequest, payments: StripePayments = Depends(get_payments)):
    client_secret = payments.create_payment_intent(request.price)
    return {"clientSecret": client_secret}

# ==================== USER ENDPOINTS ====================

@router.get("/users")
def get_users(db: MongoDBManager = Depends(get_db)):
    return db.get_all_users()


@router.get("/teacher-requests")
def get_teacher_requests(db: MongoDBManager = Depends(get_db)):
    """Users that applied to teach (pending, rejected or accepted)"""
    return db.get_teacher_requests()


@router.get("/user/{email}")
def get_user(email: str, db: MongoDBManager = Depends(get_db)):
    return db.get_user_by_email(email)


@router.put("/user")
def save_user(user: UserUpsertRequest, db: MongoDBManager = Depends(get_db)):
    """
    Save a user on login or on a teacher application.
    Returns the update result when something was written, otherwise the stored user.
    """
    return db.upsert_user(user.model_dump(exclude_none=True))


@router.patch("/teacher-approve/{user_id}", response_model=UpdateResultResponse)
def approve_teacher(user_id: str, db: MongoDBManager = Depends(get_db)):
    return db.approve_teacher(user_id)


@router.patch("/teacher-reject/{user_id}", response_model=UpdateResultResponse)
def reject_teacher(user_id: str, db: MongoDBManager = Depends(get_db)):
    return db.reject_teacher(user_id)


@router.patch("/user/{user_id}", response_model=UpdateResultResponse)
def make_admin(user_id: str, db: MongoDBManager = Depends(get_db)):
    return db.make_admin(user_id)

# ==================== CLASS ENDPOINTS ====================

@router.get("/classes")
def get_classes(db: MongoDBManager = Depends(get_db)):
    """Accepted classes only"""
    return db.get_accepted_classes()


@router.get("/classes/{class_id}")
def get_class(class_id: str, db: MongoDBManager = Depends(get_db)):
    return db.get_class_by_id(class_id)


@router.get("/teacher-classes/{email}")
def get_teacher_classes(email: str, db: MongoDBManager = Depends(get_db)):
    return db.get_teacher_classes(email)


@router.get("/class-requests")
def get_class_requests(db: MongoDBManager = Depends(get_db)):
    return db.get_class_requests()


@router.post("/classes", response_model=InsertResultResponse)
def create_class(class_data: ClassRequest, db: MongoDBManager = Depends(get_db)):
    return db.create_class(class_data.model_dump(exclude_unset=True))


@router.put("/classes/{class_id}", response_model=UpdateResultResponse)
def update_class(class_id: str, class_data: ClassRequest, db: MongoDBManager = Depends(get_db)):
    return db.update_class(class_id, class_data.model_dump(exclude_unset=True))


@router.patch("/class-approve/{class_id}", response_model=UpdateResultResponse)
def approve_class(class_id: str, review: Optional[ClassReviewRequest] = None,
                  db: MongoDBManager = Depends(get_db)):
    extra = review.model_dump(exclude_unset=True) if review else {}
    return db.set_class_status(class_id, "Accepted", extra)


@router.patch("/class-reject/{class_id}", response_model=UpdateResultResponse)
def reject_class(class_id: str, review: Optional[ClassReviewRequest] = None,
                 db: MongoDBManager = Depends(get_db)):
    extra = review.model_dump(exclude_unset=True) if review else {}
    return db.set_class_status(class_id, "Rejected", extra)


@router.delete("/classes/{class_id}", response_model=DeleteResultResponse)
def delete_class(class_id: str, db: MongoDBManager = Depends(get_db)):
    return db.delete_class(class_id)


@router.put("/add-assignment/{class_id}", response_model=UpdateResultResponse)
def add_assignment(class_id: str, assignment: AssignmentRequest, db: MongoDBManager = Depends(get_db)):
    return db.add_assignment(class_id, assignment.model_dump(exclude_unset=True))

# ==================== ENROLLMENT ENDPOINTS ====================

@router.get("/enrolledClasses")
def get_enrolled_classes_catalog(db: MongoDBManager = Depends(get_db)):
    """Every class regardless of status"""
    return db.get_all_classes()


@router.get("/enrolled-classes/{email}")
def get_enrollments(email: str, db: MongoDBManager = Depends(get_db)):
    return db.get_enrollments_by_email(email)


@router.get("/enrolled-class/{class_id}")
def get_enrolled_class(class_id: str, db: MongoDBManager = Depends(get_db)):
    return db.get_class_by_id(class_id)


@router.post("/enroll", response_model=InsertResultResponse)
def enroll(enrollment: EnrollmentRequest, db: MongoDBManager = Depends(get_db)):
    return db.create_enrollment(enrollment.model_dump())

# ==================== APP FACTORY ====================

def create_app(settings: Optional[Settings] = None,
               db: Optional[MongoDBManager] = None,
               payments: Optional[StripePayments] = None) -> FastAPI:
    """
    Build the API.

    The database manager is created when the app starts and closed when it
    stops, unless one is passed in, in which case the caller owns it.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_db = app.state.db is None
        if owns_db:
            app.state.db = MongoDBManager(mongo_uri=settings.mongo_uri, db_name=settings.db_name)
            print("✅ Using MongoDB for storage")
        yield
        if owns_db:
            app.state.db.close()
            app.state.db = None

    app = FastAPI(title="EduElevate API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.payments = payments or StripePayments(settings.stripe_secret_key, settings.currency)

    app.add_middleware(TimeoutMiddleware, timeout=settings.request_timeout)
    app.add_middleware(RequestLoggingMiddleware)
    # Added last so it is outermost and timeout responses carry CORS headers too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def run():
    import uvicorn
    port = app.state.settings.port
    print(f"EduElevate running on PORT : {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
