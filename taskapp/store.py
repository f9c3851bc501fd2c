"""
Redis-backed persistence.

Layout:
    task:{id}              JSON task document
    user:{<userId>}:tasks  set of task ids owned by that user
    user:{id}              JSON user document
    user:email:{email}     user id, unique per lower-cased email

Every task read or write goes through a method that takes both the task id
and the owner id, and checks ownership inside the same Redis transaction as
the write.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

import redis

from .models import TaskPriority, TaskResponse, TaskStatus, UserResponse

Clock = Callable[[], datetime]

_IMMUTABLE_FIELDS = {"id", "userId", "createdAt"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def task_key(task_id: str) -> str:
    return f"task:{task_id}"


def owner_index_key(owner_id: str) -> str:
    return f"user:{{{owner_id}}}:tasks"


class RedisTaskStore:
    def __init__(self, client: redis.Redis, clock: Clock = _utcnow):
        self.r = client
        self.clock = clock

    def _load(self, raw: Optional[str]) -> Optional[TaskResponse]:
        if raw is None:
            return None
        return TaskResponse.model_validate_json(raw)

    def create(self, owner_id: str, fields: dict) -> TaskResponse:
        task = TaskResponse(
            id=str(uuid.uuid4()),
            userId=owner_id,
            createdAt=self.clock(),
            **fields,
        )
        with self.r.pipeline(transaction=True) as p:
            p.set(task_key(task.id), task.model_dump_json())
            p.sadd(owner_index_key(owner_id), task.id)
            p.execute()
        return task

    def list(
        self,
        owner_id: str,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> list:
        ids = list(self.r.smembers(owner_index_key(owner_id)))
        if not ids:
            return []
        raw = self.r.mget([task_key(i) for i in ids])
        tasks = []
        for doc in raw:
            task = self._load(doc)
            if task is None or task.userId != owner_id:
                continue
            if status is not None and task.status != status:
                continue
            if priority is not None and task.priority != priority:
                continue
            tasks.append(task)
        tasks.sort(key=lambda t: t.createdAt, reverse=True)
        return tasks

    def get_owned(self, task_id: str, owner_id: str) -> Optional[TaskResponse]:
        with self.r.pipeline(transaction=True) as p:
            p.sismember(owner_index_key(owner_id), task_id)
            p.get(task_key(task_id))
            is_member, raw = p.execute()
        if not is_member:
            return None
        task = self._load(raw)
        if task is None or task.userId != owner_id:
            return None
        return task

    def update_owned(self, task_id: str, owner_id: str, changes: dict) -> Optional[TaskResponse]:
        key = task_key(task_id)
        index_key = owner_index_key(owner_id)
        updates = {k: v for k, v in changes.items() if k not in _IMMUTABLE_FIELDS}

        def apply(pipe) -> Optional[TaskResponse]:
            current = self._owned_in_transaction(pipe, key, index_key, task_id, owner_id)
            if current is None:
                return None
            updated = TaskResponse.model_validate({**current.model_dump(), **updates})
            pipe.multi()
            pipe.set(key, updated.model_dump_json())
            return updated

        return self.r.transaction(apply, key, index_key, value_from_callable=True)

    def delete_owned(self, task_id: str, owner_id: str) -> bool:
        key = task_key(task_id)
        index_key = owner_index_key(owner_id)

        def apply(pipe) -> bool:
            if self._owned_in_transaction(pipe, key, index_key, task_id, owner_id) is None:
                return False
            pipe.multi()
            pipe.delete(key)
            pipe.srem(index_key, task_id)
            return True

        return self.r.transaction(apply, key, index_key, value_from_callable=True)

    def _owned_in_transaction(self, pipe, key, index_key, task_id, owner_id) -> Optional[TaskResponse]:
        # pipe is WATCHing key and index_key, so these run immediately
        if not pipe.sismember(index_key, task_id):
            return None
        task = self._load(pipe.get(key))
        if task is None or task.userId != owner_id:
            return None
        return task


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def email_key(email: str) -> str:
    return f"user:email:{email.strip().lower()}"


class EmailTaken(Exception):
    pass


class RedisUserStore:
    def __init__(self, client: redis.Redis, clock: Clock = _utcnow):
        self.r = client
        self.clock = clock

    def create(self, email: str, name: str, password_hash: str) -> UserResponse:
        user_id = str(uuid.uuid4())
        key = email_key(email)
        doc = {
            "email": email.strip().lower(),
            "name": name,
            "passwordHash": password_hash,
            "createdAt": str(self.clock()),
        }

        def apply(pipe) -> None:
            # email reservation and user document land together or not at all
            if pipe.exists(key):
                raise EmailTaken(email)
            pipe.multi()
            pipe.set(key, user_id)
            pipe.set(user_key(user_id), json.dumps(doc))

        self.r.transaction(apply, key)
        return UserResponse(id=user_id, name=name, email=doc["email"], created_at=doc["createdAt"])

    def get(self, user_id: str) -> Optional[UserResponse]:
        raw = self.r.get(user_key(user_id))
        if raw is None:
            return None
        doc = json.loads(raw)
        return UserResponse(
            id=user_id,
            name=doc["name"],
            email=doc["email"],
            created_at=doc["createdAt"],
        )

    def find_credentials(self, email: str) -> Optional[Tuple[str, str]]:
        user_id = self.r.get(email_key(email))
        if user_id is None:
            return None
        raw = self.r.get(user_key(user_id))
        if raw is None:
            return None
        return user_id, json.loads(raw)["passwordHash"]
