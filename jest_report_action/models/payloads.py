"""Payloads sent to the GitHub checks and issues APIs."""

from collections.abc import Sequence
from typing import Literal, TypeAlias

from pydantic import Field

from jest_report_action.models.base import Model

AnnotationLevel: TypeAlias = Literal["notice", "warning", "failure"]
CheckConclusion: TypeAlias = Literal["success", "failure"]


class Annotation(Model):
    """A check run annotation pointing at a source location."""

    path: str = Field(..., description="File path relative to the repository")
    start_line: int = Field(..., ge=0)
    end_line: int = Field(..., ge=0)
    annotation_level: AnnotationLevel = "failure"
    title: str
    message: str


class CheckOutput(Model):
    """Output section of a check run."""

    title: str
    summary: str
    text: str
    annotations: Sequence[Annotation] = Field(default_factory=list)


class CheckPayload(Model):
    """Parameters for ``POST /repos/{owner}/{repo}/check-runs``."""

    owner: str
    repo: str
    head_sha: str
    name: str
    status: Literal["completed"] = "completed"
    conclusion: CheckConclusion
    output: CheckOutput


class CommentPayload(Model):
    """Parameters for ``POST /repos/{owner}/{repo}/issues/{number}/comments``."""

    owner: str
    repo: str
    issue_number: int
    body: str
