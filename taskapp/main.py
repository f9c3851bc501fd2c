from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.sessions import SessionMiddleware

from .auth import SessionAuth, current_user, get_session_auth, hash_password
from .config import Settings, get_settings
from .errors import (
    Conflict,
    NotFound,
    ServiceUnavailable,
    Unauthorized,
    ValidationFailed,
    failure_boundary,
    install_error_handlers,
)
from .logging_setup import setup_logging
from .models import (
    LoginRequest,
    SuggestRequest,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    UserCreate,
    UserResponse,
)
from .store import EmailTaken, RedisTaskStore, RedisUserStore
from .suggest import OpenAITextGenerator, TextGenerator, suggest

logger = logging.getLogger(__name__)

router = APIRouter()


def get_task_store(request: Request) -> RedisTaskStore:
    return request.app.state.tasks


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_text_generator(request: Request) -> Optional[TextGenerator]:
    return request.app.state.text_generator


async def read_payload(request: Request, model):
    try:
        body = await request.json()
    except ValueError:
        raise ValidationFailed("Invalid JSON body")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise ValidationFailed(details=json.loads(e.json(include_url=False)))


def parse_filter(enum_cls, name: str, value: Optional[str]):
    """Empty query values mean no filter; anything else must be an enum member."""
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationFailed(details=[{
            "type": "enum",
            "loc": ["query", name],
            "msg": f"Input should be one of: {allowed}",
            "input": value,
        }])


def _task_not_found() -> NotFound:
    return NotFound("Task not found")


@router.get("/health")
async def health():
    return {"status": "healthy"}


@router.post("/auth/register", status_code=201)
async def register(
    payload: UserCreate,
    auth: SessionAuth = Depends(get_session_auth),
):
    with failure_boundary("Register"):
        try:
            password_hash = await run_in_threadpool(hash_password, payload.password)
            user = auth.users.create(payload.email, payload.name, password_hash)
        except EmailTaken:
            raise Conflict("Email already registered")
        logger.info("registered user %s", user.id)
        return {"user": user}


@router.post("/auth/login")
async def login(
    payload: LoginRequest,
    request: Request,
    auth: SessionAuth = Depends(get_session_auth),
):
    with failure_boundary("Login"):
        user = await run_in_threadpool(auth.authenticate, payload.email, payload.password)
        if user is None:
            logger.info("failed login attempt")
            raise Unauthorized("Invalid email or password")
        auth.login(request, user)
        return {"user": user}


@router.post("/auth/logout")
async def logout(request: Request, auth: SessionAuth = Depends(get_session_auth)):
    auth.logout(request)
    return {"message": "Logged out"}


@router.get("/auth/me")
async def me(user: UserResponse = Depends(current_user)):
    return {"user": user}


@router.get("/tasks")
async def list_tasks(
    user: UserResponse = Depends(current_user),
    tasks: RedisTaskStore = Depends(get_task_store),
    status: Optional[str] = Query(default=None),
    priority: Optional[str] = Query(default=None),
):
    with failure_boundary("Get tasks"):
        status = parse_filter(TaskStatus, "status", status)
        priority = parse_filter(TaskPriority, "priority", priority)
        return {"tasks": tasks.list(user.id, status=status, priority=priority)}


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    user: UserResponse = Depends(current_user),
    tasks: RedisTaskStore = Depends(get_task_store),
):
    with failure_boundary("Get task"):
        task = tasks.get_owned(task_id, user.id)
        if task is None:
            raise _task_not_found()
        return {"task": task}


@router.post("/tasks", status_code=201)
async def create_task(
    request: Request,
    user: UserResponse = Depends(current_user),
    tasks: RedisTaskStore = Depends(get_task_store),
):
    with failure_boundary("Create task"):
        payload = await read_payload(request, TaskCreate)
        task = tasks.create(user.id, payload.new_task_fields())
        logger.info("created task %s for user %s", task.id, user.id)
        return {"task": task}


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    request: Request,
    user: UserResponse = Depends(current_user),
    tasks: RedisTaskStore = Depends(get_task_store),
):
    with failure_boundary("Update task"):
        # existence before validation: a bad id with a bad body is a 404
        if tasks.get_owned(task_id, user.id) is None:
            raise _task_not_found()
        payload = await read_payload(request, TaskUpdate)
        task = tasks.update_owned(task_id, user.id, payload.changes())
        if task is None:
            raise _task_not_found()
        return {"task": task}


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: str,
    user: UserResponse = Depends(current_user),
    tasks: RedisTaskStore = Depends(get_task_store),
):
    with failure_boundary("Delete task"):
        if not tasks.delete_owned(task_id, user.id):
            raise _task_not_found()
        logger.info("deleted task %s for user %s", task_id, user.id)
        return {"message": "Task deleted successfully"}


@router.post("/ai/suggest")
async def ai_suggest(
    request: Request,
    user: UserResponse = Depends(current_user),
    settings: Settings = Depends(get_app_settings),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
):
    with failure_boundary("AI suggestion", "Failed to generate suggestions", expose_type=True):
        body = SuggestRequest.model_validate(await request.json())
        if not settings.ai_configured or generator is None:
            raise ServiceUnavailable("AI feature not configured")
        result = await run_in_threadpool(suggest, generator, body.taskTitle, body.taskDescription)
        return {"suggestions": result.to_payload()}


def create_app(
    settings: Optional[Settings] = None,
    redis_client: Optional[redis.Redis] = None,
    text_generator: Optional[TextGenerator] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if redis_client is None:
        redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,
        )
    if text_generator is None and settings.ai_configured:
        text_generator = OpenAITextGenerator(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout_seconds=settings.openai_timeout_seconds,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_file)
        logger.info("serving with redis at %s:%s", settings.redis_host, settings.redis_port)
        yield

    app = FastAPI(title="Task Tracker", lifespan=lifespan)
    app.state.settings = settings
    app.state.redis = redis_client
    app.state.tasks = RedisTaskStore(redis_client)
    app.state.session_auth = SessionAuth(RedisUserStore(redis_client))
    app.state.text_generator = text_generator

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age,
        same_site="lax",
    )
    install_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
