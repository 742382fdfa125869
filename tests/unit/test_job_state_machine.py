"""Unit tests for the Job entity and its lifecycle state machine."""

import copy
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from orchestrator.domain.entities import (
    Classification,
    Decision,
    DecisionAction,
    BinCompartment,
    Job,
    JobStatus,
    allowed_transitions,
)
from orchestrator.domain.exceptions import InvalidInputError, InvalidTransitionError

LEGAL = {
    (JobStatus.PENDING, JobStatus.UPLOADING),
    (JobStatus.PENDING, JobStatus.PROCESSING),
    (JobStatus.PENDING, JobStatus.FAILED),
    (JobStatus.UPLOADING, JobStatus.PROCESSING),
    (JobStatus.UPLOADING, JobStatus.FAILED),
    (JobStatus.PROCESSING, JobStatus.COMPLETED),
    (JobStatus.PROCESSING, JobStatus.FAILED),
}


# ── Helpers ──────────────────────────────────────────────────────────


def _accept_decision() -> Decision:
    return Decision(
        action=DecisionAction.ACCEPT,
        message="Place it in the recyclable compartment",
        bin_compartment=BinCompartment.RECYCLABLE,
        confidence_threshold_met=True,
    )


def _job_in(status: JobStatus) -> Job:
    job = Job(device_id="bin-01")
    if status is JobStatus.PENDING:
        return job
    if status is JobStatus.UPLOADING:
        job.mark_uploading()
        return job
    job.mark_processing()
    if status is JobStatus.COMPLETED:
        job.attach_classification(Classification(label="paper", confidence=0.9))
        job.attach_decision(_accept_decision())
        job.mark_completed()
    elif status is JobStatus.FAILED:
        job.mark_failed("model_error")
    return job


# ── Creation ─────────────────────────────────────────────────────────


def test_new_job_is_pending_with_derived_image_key():
    job = Job(device_id="bin-01")
    assert job.status is JobStatus.PENDING
    assert job.job_id.startswith("job_")
    assert job.image_key == f"uploads/bin-01/{job.job_id}.jpg"
    assert job.completed_at is None
    assert job.processing_started_at is None


def test_job_ids_are_unique():
    assert len({Job(device_id="bin-01").job_id for _ in range(100)}) == 100


# ── Transition table ─────────────────────────────────────────────────


def test_transition_table_covers_every_status():
    for status in JobStatus:
        reachable = allowed_transitions(status)
        assert {(status, target) for target in reachable} == {p for p in LEGAL if p[0] is status}


@pytest.mark.parametrize(
    "source,target",
    [pair for pair in itertools.product(JobStatus, JobStatus) if pair not in LEGAL],
)
def test_illegal_transition_leaves_job_unchanged(source, target):
    job = _job_in(source)
    before = copy.deepcopy(job)

    with pytest.raises(InvalidTransitionError):
        job.transition_to(target, error_message="boom")

    assert job == before


def test_terminal_states_have_no_outbound_transitions():
    assert allowed_transitions(JobStatus.COMPLETED) == frozenset()
    assert allowed_transitions(JobStatus.FAILED) == frozenset()
    assert JobStatus.COMPLETED.is_terminal and JobStatus.FAILED.is_terminal
    assert not JobStatus.PROCESSING.is_terminal


def test_pending_can_skip_straight_to_processing():
    job = Job(device_id="bin-01")
    job.mark_processing()
    assert job.status is JobStatus.PROCESSING
    assert job.processing_started_at is not None


# ── Timestamps and invariants ────────────────────────────────────────


def test_entering_processing_stamps_start_time():
    job = Job(device_id="bin-01")
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    job.transition_to(JobStatus.PROCESSING, now=now)
    assert job.processing_started_at == now
    assert job.updated_at == now


@pytest.mark.parametrize("status", list(JobStatus))
def test_completed_at_set_iff_terminal(status):
    job = _job_in(status)
    assert (job.completed_at is not None) == status.is_terminal


def test_failing_requires_error_message():
    job = _job_in(JobStatus.PROCESSING)
    before = copy.deepcopy(job)

    with pytest.raises(InvalidInputError):
        job.transition_to(JobStatus.FAILED, error_message="   ")

    assert job == before
    job.mark_failed("model_error")
    assert job.error_message == "model_error"
    assert job.status is JobStatus.FAILED


def test_cannot_complete_without_decision():
    job = _job_in(JobStatus.PROCESSING)
    with pytest.raises(InvalidTransitionError):
        job.mark_completed()
    assert job.status is JobStatus.PROCESSING


def test_decision_requires_classification():
    job = _job_in(JobStatus.PROCESSING)
    with pytest.raises(InvalidTransitionError):
        job.attach_decision(_accept_decision())
    assert job.decision is None


def test_classification_only_attached_once_and_while_processing():
    pending = Job(device_id="bin-01")
    with pytest.raises(InvalidTransitionError):
        pending.attach_classification(Classification(label="paper", confidence=0.9))

    job = _job_in(JobStatus.PROCESSING)
    job.attach_classification(Classification(label="paper", confidence=0.9))
    with pytest.raises(InvalidTransitionError):
        job.attach_classification(Classification(label="cardboard", confidence=0.95))
    assert job.classification.label == "paper"


# ── Processing duration ──────────────────────────────────────────────


def test_processing_duration_undefined_before_processing():
    assert Job(device_id="bin-01").processing_duration() is None


def test_processing_duration_uses_completion_time():
    job = Job(device_id="bin-01")
    start = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    job.transition_to(JobStatus.PROCESSING, now=start)
    job.transition_to(JobStatus.FAILED, error_message="timeout", now=start + timedelta(seconds=3))

    later = start + timedelta(hours=1)
    assert job.processing_duration(now=later) == timedelta(seconds=3)


def test_processing_duration_runs_until_now_while_processing():
    job = Job(device_id="bin-01")
    start = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    job.transition_to(JobStatus.PROCESSING, now=start)
    assert job.processing_duration(now=start + timedelta(seconds=2)) == timedelta(seconds=2)
