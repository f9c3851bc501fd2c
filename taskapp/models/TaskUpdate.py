from .TaskCreate import TaskCreate


class TaskUpdate(TaskCreate):
    """Same shape and rules as TaskCreate; applied on top of a stored task."""

    def changes(self) -> dict:
        # dueDate and tags are always replaced; the rest only when sent
        sent = self.model_dump(exclude_unset=True)
        out = {}
        for key in ("title", "status", "priority"):
            if sent.get(key) is not None:
                out[key] = getattr(self, key)
        if "description" in sent:
            out["description"] = self.description
        out["dueDate"] = self.dueDate
        out["tags"] = list(self.tags or [])
        return out
