"""Unit tests for report value types."""

from __future__ import annotations

import datetime as dt

import msgspec
import pytest

from reportflow.reports import (
    ArtifactKind,
    ArtifactStatus,
    ArtifactView,
    FailureOutcome,
    InvalidInputError,
    RemoteDeletionState,
    ReportSubmission,
    RequestStatus,
    RequestView,
    SuccessOutcome,
)

_NOW = dt.datetime(2024, 7, 14, 12, 0, tzinfo=dt.UTC)


def _artifact(
    kind: ArtifactKind,
    status: ArtifactStatus,
    *,
    file_id: str | None = None,
) -> ArtifactView:
    return ArtifactView(
        kind=kind,
        status=status,
        file_id=file_id,
        file_location=f"bucket/{file_id}" if file_id else None,
        created_at=_NOW,
        updated_at=_NOW,
    )


def _request(pdf: ArtifactStatus, spreadsheet: ArtifactStatus) -> RequestView:
    return RequestView(
        id="Req-1",
        submitter="ops@example.com",
        description="Weekly",
        created_at=_NOW,
        updated_at=_NOW,
        artifacts=(
            _artifact(ArtifactKind.PDF, pdf),
            _artifact(ArtifactKind.SPREADSHEET, spreadsheet),
        ),
    )


class TestRequestStatus:
    """The aggregate status is derived from both artifacts."""

    @pytest.mark.parametrize(
        ("pdf", "spreadsheet", "expected"),
        [
            (ArtifactStatus.PENDING, ArtifactStatus.PENDING, RequestStatus.PENDING),
            (ArtifactStatus.COMPLETED, ArtifactStatus.PENDING, RequestStatus.PENDING),
            (ArtifactStatus.FAILED, ArtifactStatus.PENDING, RequestStatus.PENDING),
            (ArtifactStatus.COMPLETED, ArtifactStatus.FAILED, RequestStatus.FAILED),
            (ArtifactStatus.FAILED, ArtifactStatus.FAILED, RequestStatus.FAILED),
            (
                ArtifactStatus.COMPLETED,
                ArtifactStatus.COMPLETED,
                RequestStatus.COMPLETED,
            ),
        ],
    )
    def test_derived_status(
        self,
        pdf: ArtifactStatus,
        spreadsheet: ArtifactStatus,
        expected: RequestStatus,
    ) -> None:
        """Pending wins over failed, and completed needs both artifacts."""
        assert _request(pdf, spreadsheet).status is expected

    def test_artifact_lookup(self) -> None:
        """artifact() returns the artifact of the requested kind."""
        view = _request(ArtifactStatus.COMPLETED, ArtifactStatus.FAILED)
        assert view.artifact(ArtifactKind.SPREADSHEET).status is ArtifactStatus.FAILED

    def test_payload_includes_status(self) -> None:
        """to_payload() is JSON-ready and carries the derived status."""
        view = _request(ArtifactStatus.COMPLETED, ArtifactStatus.PENDING)
        payload = view.to_payload()

        assert payload["status"] == "pending"
        assert payload["id"] == "Req-1"
        assert payload["artifacts"][0]["kind"] == "pdf"
        assert isinstance(payload["created_at"], str)
        msgspec.json.encode(payload)


class TestArtifactMatches:
    """Duplicate detection for terminal artifacts."""

    def test_same_success_matches(self) -> None:
        """A success with the stored file id is a duplicate."""
        artifact = _artifact(ArtifactKind.PDF, ArtifactStatus.COMPLETED, file_id="F1")
        outcome = SuccessOutcome(file_id="F1", file_location="bucket/F1")
        assert artifact.matches(outcome)

    def test_different_file_id_does_not_match(self) -> None:
        """A success naming another file conflicts."""
        artifact = _artifact(ArtifactKind.PDF, ArtifactStatus.COMPLETED, file_id="F1")
        outcome = SuccessOutcome(file_id="F2", file_location="bucket/F2")
        assert not artifact.matches(outcome)

    def test_any_failure_matches_failed_artifact(self) -> None:
        """Failures repeat a failed artifact whatever their reason."""
        artifact = _artifact(ArtifactKind.PDF, ArtifactStatus.FAILED)
        assert artifact.matches(FailureOutcome(reason="something else"))

    def test_failure_does_not_match_completed(self) -> None:
        """A failure after completion conflicts."""
        artifact = _artifact(ArtifactKind.PDF, ArtifactStatus.COMPLETED, file_id="F1")
        assert not artifact.matches(FailureOutcome(reason="late failure"))


class TestEnums:
    """Enum helpers."""

    @pytest.mark.parametrize("raw", ["pdf", "PDF", " pdf "])
    def test_kind_parse(self, raw: str) -> None:
        """Kinds parse case-insensitively."""
        assert ArtifactKind.parse(raw) is ArtifactKind.PDF

    def test_kind_parse_rejects_unknown(self) -> None:
        """Unknown kinds raise InvalidInputError naming the field."""
        with pytest.raises(InvalidInputError) as exc_info:
            ArtifactKind.parse("docx")
        assert exc_info.value.field == "kind"

    def test_terminal_statuses(self) -> None:
        """Only pending is non-terminal."""
        assert not ArtifactStatus.PENDING.is_terminal
        assert ArtifactStatus.COMPLETED.is_terminal
        assert ArtifactStatus.FAILED.is_terminal

    def test_resolved_remote_deletions(self) -> None:
        """Only pending remote deletions are unresolved."""
        assert not RemoteDeletionState.PENDING.is_resolved
        assert RemoteDeletionState.CONFIRMED.is_resolved
        assert RemoteDeletionState.ABANDONED.is_resolved


class TestReportSubmission:
    """Validation of caller input."""

    def test_decodes_from_json(self) -> None:
        """Headers and rows decode into tuples."""
        submission = msgspec.json.decode(
            b'{"submitter": "a@example.com", "description": "d",'
            b' "headers": ["x", "y"], "data": [["1", "2"]]}',
            type=ReportSubmission,
        )
        assert submission.headers == ("x", "y")
        assert submission.data == (("1", "2"),)

    @pytest.mark.parametrize("field", ["submitter", "description"])
    def test_blank_required_field_rejected(self, field: str) -> None:
        """Blank submitter or description is invalid input."""
        values = {"submitter": "a@example.com", "description": "d", field: "  "}
        with pytest.raises(InvalidInputError) as exc_info:
            ReportSubmission(**values).validated()
        assert exc_info.value.field == field
