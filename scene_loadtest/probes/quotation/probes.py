"""Quotation scene probes: list, detail, create and submit."""

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from scene_loadtest.models.result import Failure, ProbeResult, Response, Success
from scene_loadtest.probes.base import (
    ApiProbe,
    Check,
    Probe,
    ProbeContext,
    error_is_false,
    json_body,
    json_data,
)

QUOTATION_ID = "quotation_id"

MY_WORK_STATUSES = (
    "Draft",
    "SubmitToSSP",
    "SubmitToUW",
    "NeedMoreInformation",
    "DiscountApprovalSubmitted",
    "DiscountApprovalRejected",
    "ClosedLost",
    "Deleted",
    "Cancelled",
    "QuotationExpired",
    "QuotationIssued",
    "ClosedWon",
    "PendingPolicyIssue",
    "PolicyIssued",
    "NotUsed",
    "AppFormSubmitted",
)

MY_TEAM_STATUSES = (
    "Draft",
    "SubmitToSSP",
    "SubmitToUW",
    "NeedMoreInformation",
    "DiscountApprovalSubmitted",
    "DiscountApprovalApproved",
    "DiscountApprovalRejected",
    "PendingPolicyIssue",
    "AppFormSubmitted",
    "SubmitToDP",
)


def _missing_quotation() -> Failure:
    return Failure(kind="check_failure", detail="No quotation id available")


def _is_error_free_object(response: Response) -> bool:
    body = json_body(response)
    return isinstance(body, dict) and not body.get("error")


@dataclass(frozen=True, kw_only=True)
class ListQuotations(ApiProbe):
    """List quotation requests of the given type; remembers the first id."""

    list_type: str
    statuses_filter: Sequence[str]
    method: str = "POST"
    path: str = "/quotation/requests/list"
    limit_ms: float = 5000
    page_size: int = 20

    def request(self, context: ProbeContext) -> tuple[str, Any]:
        return self.path, {
            "type": self.list_type,
            "status": list(self.statuses_filter),
            "createDate": {},
            "updateDate": {},
            "page": 1,
            "pageSize": self.page_size,
            "sort": {},
        }

    def checks(self, context: ProbeContext) -> dict[str, Check]:
        checks = super().checks(context)
        checks[f"{self.label} has data structure"] = _has_list_data
        checks[f"{self.label} error is false"] = error_is_false
        return checks

    def on_success(self, response: Response, context: ProbeContext) -> None:
        items = json_data(response)["data"]
        if items and isinstance(items[0], dict) and "id" in items[0]:
            context.values.setdefault(QUOTATION_ID, items[0]["id"])


def _has_list_data(response: Response) -> bool:
    data = json_data(response)
    return isinstance(data, dict) and isinstance(data.get("data"), list)


@dataclass(frozen=True, kw_only=True)
class QuotationDetail(ApiProbe):
    """Fetch the detail of the remembered quotation."""

    path: str = "/quotation/detail/{id}"
    limit_ms: float = 3000

    def request(self, context: ProbeContext) -> tuple[str, Any] | Failure:
        quotation_id = context.values.get(QUOTATION_ID)
        if quotation_id is None:
            return _missing_quotation()
        return self.path.format(id=quotation_id), None

    def checks(self, context: ProbeContext) -> dict[str, Check]:
        quotation_id = context.values.get(QUOTATION_ID)
        checks = super().checks(context)
        checks[f"{self.label} valid JSON"] = _is_error_free_object
        checks[f"{self.label} has quotation data"] = (
            lambda r: json_data(r)["id"] == quotation_id
        )
        return checks


@dataclass(frozen=True, kw_only=True)
class CreateQuotation(ApiProbe):
    """Save a new quotation and remember its id."""

    method: str = "POST"
    path: str = "/quotation/save"
    limit_ms: float = 5000
    statuses: tuple[int, ...] = (201, 200)

    def request(self, context: ProbeContext) -> tuple[str, Any]:
        return self.path, {
            "title": f"Test Quotation {int(time.time() * 1000)}",
            "description": "Load test quotation",
            "items": [
                {"name": "Test Item 1", "quantity": 2, "price": 100.0},
                {"name": "Test Item 2", "quantity": 1, "price": 250.5},
            ],
        }

    def checks(self, context: ProbeContext) -> dict[str, Check]:
        checks = super().checks(context)
        checks[f"{self.label} valid JSON"] = lambda r: isinstance(json_body(r), dict)
        return checks

    def on_success(self, response: Response, context: ProbeContext) -> None:
        data = json_data(response)
        if isinstance(data, dict) and data.get("id") is not None:
            context.values[QUOTATION_ID] = data["id"]


@dataclass(frozen=True, kw_only=True)
class SubmitQuotationRequest(ApiProbe):
    """Submit the remembered quotation for approval."""

    method: str = "POST"
    path: str = "/quotation/submit-request"
    limit_ms: float = 5000

    def request(self, context: ProbeContext) -> tuple[str, Any] | Failure:
        quotation_id = context.values.get(QUOTATION_ID)
        if quotation_id is None:
            return _missing_quotation()
        return self.path, {
            "quotationId": quotation_id,
            "notes": "Load test submission",
            "urgency": "normal",
            "submittedAt": datetime.now(timezone.utc).isoformat(),
        }

    def checks(self, context: ProbeContext) -> dict[str, Check]:
        checks = super().checks(context)
        checks[f"{self.label} valid JSON"] = _is_error_free_object
        checks[f"{self.label} success message"] = (
            lambda r: "success" in json_body(r)["message"].lower()
        )
        return checks


@dataclass(frozen=True, kw_only=True)
class QuotationFiles(ApiProbe):
    """Check that the generated quotation PDF is listed."""

    path: str = "/quotation/quotation-version-quote-files?keyword={id}"
    limit_ms: float = 10000

    def request(self, context: ProbeContext) -> tuple[str, Any] | Failure:
        quotation_id = context.values.get(QUOTATION_ID)
        if quotation_id is None:
            return _missing_quotation()
        return self.path.format(id=quotation_id), None

    def checks(self, context: ProbeContext) -> dict[str, Check]:
        quotation_id = context.values.get(QUOTATION_ID)
        checks = super().checks(context)
        checks[f"{self.label} valid JSON"] = _is_error_free_object
        checks[f"{self.label} has file data"] = lambda r: len(json_data(r)) > 0
        checks[f"{self.label} file info complete"] = lambda r: _pdf_matches(
            json_data(r)[0], quotation_id
        )
        return checks


def _pdf_matches(file: Mapping[str, Any], quotation_id: Any) -> bool:
    return (
        bool(file.get("fileName"))
        and file.get("mimeType") == "application/pdf"
        and file.get("quotationVersionID") == quotation_id
    )


@dataclass(frozen=True, kw_only=True)
class ProbeSequence(Probe):
    """Run dependent probes in order, stopping at the first unsuccessful one.

    The index of the step that stopped the sequence is kept in the worker's
    context so that a retry resumes there instead of repeating the steps that
    already succeeded, such as a non-idempotent submission.
    """

    steps: Sequence[Probe]

    @property
    def resume_key(self) -> str:
        return f"{self.metric}_resume_step"

    async def execute(
        self,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        context.values.pop(self.resume_key, None)
        return await self._run_from(0, base_url, headers, context)

    async def retry(
        self,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        start = context.values.pop(self.resume_key, 0)
        return await self._run_from(start, base_url, headers, context)

    async def _run_from(
        self,
        start: int,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        result: ProbeResult = Success()
        for index in range(start, len(self.steps)):
            result = await self.steps[index].execute(base_url, headers, context)
            if not isinstance(result, Success):
                context.values[self.resume_key] = index
                return result
        return result


list_quotations_mywork = ListQuotations(
    metric="quotation_mywork_list",
    label="quotation mywork list",
    list_type="MyWork",
    statuses_filter=MY_WORK_STATUSES,
)

list_quotations_myteam = ListQuotations(
    metric="quotation_myteam_list",
    label="quotation myteam list",
    list_type="MyTeam",
    statuses_filter=MY_TEAM_STATUSES,
)

get_quotation_detail = QuotationDetail(
    metric="quotation_detail", label="quotation detail"
)

create_quotation = CreateQuotation(metric="create_quotation", label="create quotation")

submit_quotation = ProbeSequence(
    metric="submit_quotation",
    steps=(
        SubmitQuotationRequest(metric="submit_quotation", label="submit quotation"),
        QuotationFiles(metric="check_quotation_pdf", label="quotation PDF"),
    ),
)
