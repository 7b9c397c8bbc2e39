"""
Sequence allocator tests against a real SQLite database
"""
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from src.db.connection import DatabaseManager
from src.db.models.sequence_counter import SequenceCounter
from src.services.sequence_allocator import SequenceAllocator
from src.utils.exceptions import (
    AllocationConflictError,
    ExternalDependencyError,
    InvalidPrefixError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def allocator(db, clock):
    return SequenceAllocator(db, clock)


def test_sequential_allocation(allocator):
    """Numbers start at 1 and increase by one"""
    first = allocator.allocate("LC")
    second = allocator.allocate("LC")
    
    assert first.sequence_number == 1
    assert first.formatted_id == "LC-20250721-0001"
    assert first.partition_key == "LC-20250721"
    assert second.formatted_id == "LC-20250721-0002"


def test_category_partitions_are_independent(allocator):
    allocator.allocate("LC")
    allocator.allocate("LC")
    categorised = allocator.allocate("LC", "MIC")
    
    assert categorised.formatted_id == "LC-20250721-MIC-0001"
    assert allocator.peek("LC") == 2
    assert allocator.peek("LC", "MIC") == 1


def test_day_rollover_starts_new_partition(allocator, clock):
    allocator.allocate("PLN")
    allocator.allocate("PLN")
    
    clock.advance(days=1)
    rolled = allocator.allocate("PLN")
    
    assert rolled.formatted_id == "PLN-20250722-0001"
    assert allocator.list_counters("20250721")[0]["current_value"] == 2


def test_concurrent_allocations_are_distinct(allocator):
    """Parallel callers on one partition get a gap-free set of numbers"""
    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(lambda _: allocator.allocate("ACKN"), range(40)))
    
    numbers = sorted(result.sequence_number for result in results)
    assert numbers == list(range(1, 41))
    assert len({result.formatted_id for result in results}) == 40


def test_rolled_back_allocation_is_reused(db, allocator):
    """Joining the caller's transaction returns the number on rollback"""
    with pytest.raises(RuntimeError):
        with db.get_db_session() as session:
            allocator.allocate("LC", db_session=session)
            raise RuntimeError("caller failed")
    
    assert allocator.allocate("LC").sequence_number == 1


def test_invalid_prefix(allocator):
    with pytest.raises(InvalidPrefixError):
        allocator.allocate("lc")
    with pytest.raises(InvalidPrefixError):
        allocator.allocate("LC", "m")


def test_peek_empty_partition(allocator):
    with pytest.raises(NotFoundError):
        allocator.peek("LAW")


def test_sequence_status(allocator):
    status = allocator.get_sequence_status("LAW")
    assert status["current_value"] == 0
    assert status["next_identifier"] == "LAW-20250721-0001"
    
    allocator.allocate("LAW")
    status = allocator.get_sequence_status("LAW")
    assert status["current_value"] == 1
    assert status["next_identifier"] == "LAW-20250721-0002"


def test_is_unique_checks_entity_table(allocator, make_case):
    case = make_case()
    
    assert allocator.is_unique(case.case_code) is False
    assert allocator.is_unique("LC-20250721-9999") is True
    with pytest.raises(InvalidPrefixError):
        allocator.is_unique("ZZ-20250721-0001")
    with pytest.raises(ValidationError):
        allocator.is_unique("LC-0001")


def test_insert_race_retries_and_increments(db, allocator, monkeypatch):
    """A lost insert race falls back to incrementing the winner's row"""
    with db.get_db_session() as session:
        session.add(SequenceCounter(
            partition_key="LC-20250721", prefix="LC", date_stamp="20250721", current_value=5
        ))
    
    original = allocator._increment_existing
    calls = []
    
    def miss_once(session, partition_key):
        calls.append(partition_key)
        if len(calls) == 1:
            return None
        return original(session, partition_key)
    
    monkeypatch.setattr(allocator, "_increment_existing", miss_once)
    
    assert allocator.allocate("LC").sequence_number == 6
    assert len(calls) == 2


def test_retry_budget_exhausted(db, clock, monkeypatch):
    allocator = SequenceAllocator(db, clock, max_attempts=3)
    allocator.allocate("LC")
    monkeypatch.setattr(allocator, "_increment_existing", lambda session, key: None)
    
    with pytest.raises(AllocationConflictError) as exc_info:
        allocator.allocate("LC")
    assert exc_info.value.attempts == 3
    assert exc_info.value.category == "retryable"
    
    monkeypatch.undo()
    assert allocator.allocate("LC").sequence_number == 2


def test_storage_errors_surface_as_dependency_errors(db):
    with pytest.raises(ExternalDependencyError):
        with db.get_db_session():
            raise OperationalError("UPDATE sequence_counter", {}, Exception("disk I/O error"))


def test_lock_timeout_is_reported(tmp_path, clock):
    """A writer that cannot get the database lock fails instead of hanging"""
    url = f"sqlite:///{tmp_path / 'locked.db'}"
    holder = DatabaseManager(url, timeout_seconds=5)
    holder.create_all()
    waiter = DatabaseManager(url, timeout_seconds=0.2)
    
    try:
        with holder.get_db_session() as session:
            session.execute(text("SELECT 1"))
            with pytest.raises(ExternalDependencyError):
                SequenceAllocator(waiter, clock).allocate("LC")
    finally:
        waiter.close()
        holder.close()
