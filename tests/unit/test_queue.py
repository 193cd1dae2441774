"""Tests for the rate limited work queue."""

from __future__ import annotations

import threading
import time

import pytest

from rest_dynamic_operator.controller import Event, EventType, RateLimitingQueue
from rest_dynamic_operator.controller.ratelimit import ItemExponentialFailureRateLimiter
from rest_dynamic_operator.utils.unstructured import ObjectRef

REF_A = ObjectRef("sample.example.org/v1alpha1", "Repo", "a", "default")
REF_B = ObjectRef("sample.example.org/v1alpha1", "Repo", "b", "default")


@pytest.fixture
def queue():
    q = RateLimitingQueue(ItemExponentialFailureRateLimiter(base_delay=0.01, max_delay=0.05))
    yield q
    q.shut_down()


class TestDeduplication:
    """Test cases for identical item handling."""

    def test_identical_events_deduplicate(self, queue):
        """Test that events differing only by id collapse."""
        queue.add(Event(EventType.OBSERVE, REF_A))
        queue.add(Event(EventType.OBSERVE, REF_A))
        assert len(queue) == 1

    def test_different_types_kept(self, queue):
        queue.add(Event(EventType.OBSERVE, REF_A))
        queue.add(Event(EventType.UPDATE, REF_A))
        assert len(queue) == 2

    def test_readded_while_processing_requeued_on_done(self, queue):
        event = Event(EventType.OBSERVE, REF_A)
        queue.add(event)
        item, _ = queue.get(timeout=1)

        queue.add(Event(EventType.OBSERVE, REF_A))
        assert len(queue) == 0

        queue.done(item)
        assert len(queue) == 1

    def test_fifo(self, queue):
        first = Event(EventType.OBSERVE, REF_A)
        second = Event(EventType.OBSERVE, REF_B)
        queue.add(first)
        queue.add(second)
        assert queue.get(timeout=1)[0] == first
        assert queue.get(timeout=1)[0] == second


class TestPerKeyExclusivity:
    """Test cases for one in-flight event per resource."""

    def test_same_resource_waits(self, queue):
        observe = Event(EventType.OBSERVE, REF_A)
        update = Event(EventType.UPDATE, REF_A)
        queue.add(observe)
        queue.add(update)

        item, _ = queue.get(timeout=1)
        assert item == observe
        assert queue.get(timeout=0.05) == (None, False)

        queue.done(item)
        assert queue.get(timeout=1)[0] == update

    def test_other_resource_not_blocked(self, queue):
        queue.add(Event(EventType.OBSERVE, REF_A))
        queue.add(Event(EventType.UPDATE, REF_A))
        queue.add(Event(EventType.OBSERVE, REF_B))

        first, _ = queue.get(timeout=1)
        second, _ = queue.get(timeout=1)

        assert first.ref == REF_A
        assert second == Event(EventType.OBSERVE, REF_B)


class TestDelays:
    """Test cases for delayed and rate limited adds."""

    def test_add_after(self, queue):
        event = Event(EventType.CREATE, REF_A)
        queue.add_after(event, 0.05)
        assert len(queue) == 0

        item, shutdown = queue.get(timeout=2)

        assert item == event
        assert shutdown is False

    def test_add_after_non_positive_is_immediate(self, queue):
        queue.add_after(Event(EventType.CREATE, REF_A), 0)
        assert len(queue) == 1

    def test_rate_limited_counts_requeues(self, queue):
        event = Event(EventType.OBSERVE, REF_A)
        queue.add_rate_limited(event)
        queue.add_rate_limited(event)
        assert queue.num_requeues(event) == 2

        queue.forget(event)
        assert queue.num_requeues(event) == 0

    def test_rate_limited_item_arrives(self, queue):
        event = Event(EventType.OBSERVE, REF_A)
        queue.add_rate_limited(event)
        assert queue.get(timeout=2)[0] == event


class TestShutdown:
    """Test cases for shutdown and drain."""

    def test_get_reports_shutdown_when_empty(self, queue):
        queue.shut_down()
        assert queue.get(timeout=1) == (None, True)
        assert queue.shutting_down

    def test_queued_items_drained_after_shutdown(self, queue):
        event = Event(EventType.OBSERVE, REF_A)
        queue.add(event)
        queue.shut_down()

        assert queue.get(timeout=1) == (event, False)

    def test_add_ignored_after_shutdown(self, queue):
        queue.shut_down()
        queue.add(Event(EventType.OBSERVE, REF_A))
        queue.add_after(Event(EventType.OBSERVE, REF_B), 0.01)
        assert len(queue) == 0

    def test_blocked_get_released_by_shutdown(self, queue):
        results = []
        thread = threading.Thread(target=lambda: results.append(queue.get()))
        thread.start()
        time.sleep(0.05)

        queue.shut_down()
        thread.join(timeout=2)

        assert results == [(None, True)]

    def test_drain_waits_for_in_flight(self, queue):
        queue.add(Event(EventType.OBSERVE, REF_A))
        item, _ = queue.get(timeout=1)
        timer = threading.Timer(0.05, queue.done, args=(item,))
        timer.start()

        assert queue.shut_down_with_drain(timeout=2) is True
        timer.join()

    def test_drain_timeout(self, queue):
        queue.add(Event(EventType.OBSERVE, REF_A))
        queue.get(timeout=1)

        assert queue.shut_down_with_drain(timeout=0.05) is False
