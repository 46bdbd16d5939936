"""Pydantic models for GitHub REST API responses."""

from pydantic import BaseModel


class User(BaseModel):
    """Author of a comment."""

    login: str


class IssueComment(BaseModel):
    """A comment on an issue or pull request."""

    id: int
    user: User | None = None
    body: str | None = None


class CheckRun(BaseModel):
    """A check run created through the checks API."""

    id: int
    html_url: str | None = None
