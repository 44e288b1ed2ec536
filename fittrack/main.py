import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, Cookie, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import psycopg2
import psycopg2.errors
import psycopg2.extras
from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr
from dotenv import load_dotenv
from jose import JWTError, jwt
from passlib.hash import bcrypt

from fittrack import app_context
from fittrack.settings import load_app_config
from fittrack.app.feature_gates import FeatureGateError
from fittrack.app.memberships import provision_owner_account

load_dotenv()

CONFIG = load_app_config()
DB_CFG = CONFIG.db_kwargs()

JWT_SECRET_KEY = CONFIG.jwt_secret_key
JWT_ALGORITHM = "HS256"
JWT_EXP_MINUTES = CONFIG.jwt_exp_minutes
SESSION_COOKIE_NAME = CONFIG.session_cookie_name
SESSION_COOKIE_SECURE = CONFIG.session_cookie_secure

logger = logging.getLogger("fittrack")

USER_COLUMNS = "id, username, email, display_name, role, created_at"


def get_conn():
    return psycopg2.connect(**DB_CFG)


class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(alias="displayName", default=None)
    role: str
    created_at: Optional[datetime] = Field(alias="createdAt", default=None)

    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(BaseModel):
    username: constr(strip_whitespace=True, min_length=3, max_length=80)
    password: constr(min_length=8, max_length=256)
    email: Optional[EmailStr] = None
    display_name: Optional[constr(strip_whitespace=True, max_length=120)] = Field(
        alias="displayName", default=None
    )

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    username: str
    password: str


def create_access_token(*, subject: str, expires_delta: Optional[timedelta] = None) -> str:
    payload = {"sub": subject}
    if expires_delta is None:
        expires_delta = timedelta(minutes=JWT_EXP_MINUTES)
    expire = datetime.utcnow() + expires_delta
    payload["exp"] = expire
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def get_user_by_id(uid: int) -> Optional[UserOut]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (uid,))
        row = cur.fetchone()
    if not row:
        return None
    return UserOut(**dict(row))


def get_user_by_username(username: str) -> Optional[Dict[str, Any]]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(
            f"SELECT {USER_COLUMNS} FROM users WHERE LOWER(username) = LOWER(%s)",
            (username,),
        )
        row = cur.fetchone()
    return dict(row) if row else None


def get_user_with_password(username: str) -> Optional[Dict[str, Any]]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(
            f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE LOWER(username) = LOWER(%s)",
            (username.strip(),),
        )
        row = cur.fetchone()
    return dict(row) if row else None


def create_user(
    *,
    username: str,
    password_hash: str,
    email: Optional[str],
    display_name: Optional[str],
    role: str = "user",
) -> Dict[str, Any]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(
            f"""
            INSERT INTO users (username, password_hash, email, display_name, role)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {USER_COLUMNS}
            """,
            (username, password_hash, email, display_name, role),
        )
        row = cur.fetchone()
        conn.commit()
    return dict(row)


def list_users() -> List[Dict[str, Any]]:
    with get_conn() as conn, conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
        cur.execute(f"SELECT {USER_COLUMNS} FROM users ORDER BY id")
        rows = cur.fetchall() or []
    return [dict(row) for row in rows]


class PostgresUserStore:
    """User lookups shared with the membership and admin modules."""

    def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return get_user_by_username(username)

    def create_user(self, **fields: Any) -> Dict[str, Any]:
        return create_user(**fields)

    def get_username(self, user_id: int) -> Optional[str]:
        user = get_user_by_id(user_id)
        return user.username if user else None

    def list_users(self) -> List[Dict[str, Any]]:
        return list_users()


USER_STORE = PostgresUserStore()


def resolve_user_from_session_token(session_token: str) -> Optional[UserOut]:
    try:
        payload = jwt.decode(session_token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            return None
        user_id = int(subject)
    except (JWTError, ValueError):
        return None

    return get_user_by_id(user_id)


def get_current_user(session_token: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME)) -> UserOut:
    if not session_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = resolve_user_from_session_token(session_token)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def _set_session_cookie(response: Response, user_id: int) -> None:
    token = create_access_token(subject=str(user_id))
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
        max_age=int(timedelta(minutes=JWT_EXP_MINUTES).total_seconds()),
        path="/",
    )


app_context.configure(
    get_conn=get_conn,
    get_current_user=get_current_user,
    user_store=USER_STORE,
)

from fittrack.app.routes.admin import router as admin_router
from fittrack.app.routes.fitness import router as fitness_router
from fittrack.app.routes.integrations import router as integrations_router
from fittrack.app.routes.memberships import router as memberships_router
from fittrack.app.services.memberships import get_membership_repository, start_free_membership

app = FastAPI(title="FitTrack API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(CONFIG.cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(memberships_router)
app.include_router(admin_router)
app.include_router(fitness_router)
app.include_router(integrations_router)


@app.exception_handler(FeatureGateError)
async def handle_feature_gate_error(request: Request, exc: FeatureGateError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": dict(exc.payload)})


@app.on_event("startup")
def bootstrap_owner_account() -> None:
    result = provision_owner_account(
        USER_STORE,
        get_membership_repository(),
        password_hasher=bcrypt.hash,
        username=CONFIG.owner_username,
        email=CONFIG.owner_email,
    )
    if not result.created:
        logger.info("Owner account %s already exists", CONFIG.owner_username)


@app.post("/api/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, response: Response, background_tasks: BackgroundTasks):
    username = payload.username
    if get_user_by_username(username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")

    try:
        row = create_user(
            username=username,
            password_hash=bcrypt.hash(payload.password),
            email=payload.email.lower() if payload.email else None,
            display_name=payload.display_name,
            role="user",
        )
    except psycopg2.errors.UniqueViolation:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already exists")

    start_free_membership(row["id"], row["username"], background_tasks.add_task)
    _set_session_cookie(response, row["id"])
    logger.info("Registered user id=%s username=%s", row["id"], row["username"])
    return UserOut(**row)


@app.post("/api/login", response_model=UserOut)
def login(payload: LoginRequest, response: Response):
    user_row = get_user_with_password(payload.username)
    if not user_row or not bcrypt.verify(payload.password, user_row["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    _set_session_cookie(response, user_row["id"])
    user_row.pop("password_hash", None)
    return UserOut(**user_row)


@app.post("/api/logout")
def logout(response: Response):
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=SESSION_COOKIE_SECURE,
    )
    return {"ok": True}


@app.get("/api/user", response_model=UserOut)
def read_current_user(current_user: UserOut = Depends(get_current_user)):
    return current_user


@app.get("/api/healthz")
def healthz():
    return {"ok": True}


# run: uvicorn fittrack.main:app --host 127.0.0.1 --port 8000 --reload
