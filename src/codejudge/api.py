from __future__ import annotations
from typing import List, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from .core.models import Submission, TestCase
from .services.judge import Judge


# --------- Schemas ---------
class TestCaseReq(BaseModel):
    input: str
    expectedOutput: str


class RunReq(BaseModel):
    id: str
    language: str
    sourceCode: str
    timeout: int
    mode: str = "run-sample"
    input: Optional[str] = None
    expectedOutput: Optional[str] = None
    testcases: List[TestCaseReq] = []

    def to_submission(self) -> Submission:
        return Submission(
            id=self.id,
            language=self.language,
            source_code=self.sourceCode,
            timeout=self.timeout,
            mode=self.mode,  # validated by the judge
            input=self.input,
            expected_output=self.expectedOutput,
            testcases=[TestCase(input=t.input, expected_output=t.expectedOutput) for t in self.testcases],
        )


class RunRes(BaseModel):
    status: int
    error: Optional[str] = None
    debugOutput: Optional[str] = None
    passedCases: Optional[int] = None


class LanguageRes(BaseModel):
    name: str
    compiled: bool


def create_app(judge: Optional[Judge] = None) -> FastAPI:
    app = FastAPI(title="codejudge")
    app.state.judge = judge or Judge()

    # --------- Endpoints ---------
    @app.get("/")
    def root():
        return {"message": "codejudge at your service!"}

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/languages", response_model=List[LanguageRes])
    def languages():
        table = app.state.judge.languages
        return [LanguageRes(name=p.name, compiled=p.compiled) for p in table.values()]

    # sync on purpose: each request is judged on its own worker thread
    @app.post("/run", response_model=RunRes, response_model_exclude_none=True)
    def run(req: RunReq):
        verdict = app.state.judge.judge(req.to_submission())
        return RunRes(**verdict.to_dict())

    return app
