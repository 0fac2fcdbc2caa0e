from datetime import timedelta
from uuid import UUID, uuid4

import pytest

from src.api.errors import NotFoundError, ValidationError
from src.api.repositories import InMemoryRepository
from src.api.services import TaskService


@pytest.fixture
def service(clock):
    return TaskService(InMemoryRepository(), clock=clock)


def seed(service, count, completed_every=None):
    tasks = []
    for i in range(count):
        task = service.create(f"Task {i}", f"Desc {i}")
        if completed_every and i % completed_every == 0:
            task = service.toggle(task["id"])
        tasks.append(task)
    return tasks


class TestCreate:
    @pytest.mark.parametrize("length", [3, 4, 119, 120])
    def test_valid_title_lengths(self, service, length):
        created = service.create("t" * length, "d" * 2000)
        fetched = service.get(created["id"])
        assert fetched["completed"] is False
        assert fetched["created_at"] == fetched["updated_at"]
        assert len(fetched["title"]) == length

    @pytest.mark.parametrize("title", ["", "a", "ab", "t" * 121])
    def test_invalid_title_lengths(self, service, title):
        with pytest.raises(ValidationError) as excinfo:
            service.create(title)
        assert len(excinfo.value.errors) == 1
        assert excinfo.value.errors[0].startswith("title: ")

    def test_title_is_stored_as_given(self, service):
        created = service.create("  Buy milk  ")
        assert service.get(created["id"])["title"] == "  Buy milk  "

    def test_padded_short_title_counts_whitespace(self, service):
        assert service.create("  x ")["title"] == "  x "

    def test_padding_can_push_title_over_the_limit(self, service):
        with pytest.raises(ValidationError) as excinfo:
            service.create("  " + "t" * 118 + "  ")
        assert excinfo.value.errors == ["title: Title must be between 3 and 120 characters"]

    @pytest.mark.parametrize("title", ["   ", "\t\n", " " * 130])
    def test_whitespace_only_title_is_required(self, service, title):
        with pytest.raises(ValidationError) as excinfo:
            service.create(title)
        assert excinfo.value.errors == ["title: Title is required"]

    def test_update_keeps_title_as_given(self, service):
        task = service.create("Original")
        assert service.update(task["id"], " ab ")["title"] == " ab "

    def test_description_too_long_and_bad_title_reported_together(self, service):
        with pytest.raises(ValidationError) as excinfo:
            service.create(None, "d" * 2001)
        assert excinfo.value.errors == [
            "title: Title is required",
            "description: Description must not exceed 2000 characters",
        ]

    def test_validation_happens_before_store(self):
        repo = InMemoryRepository()
        with pytest.raises(ValidationError):
            TaskService(repo).create("no")
        assert repo.count() == 0

    def test_injected_id_factory(self, clock):
        fixed = UUID("550e8400-e29b-41d4-a716-446655440000")
        created = TaskService(InMemoryRepository(), clock=clock, id_factory=lambda: fixed).create("Fixed id")
        assert created["id"] == fixed


class TestMutations:
    def test_get_missing(self, service):
        missing = uuid4()
        with pytest.raises(NotFoundError) as excinfo:
            service.get(missing)
        assert str(missing) in excinfo.value.message

    def test_toggle_twice_restores_completed(self, service):
        task = service.create("Flip me")
        once = service.toggle(task["id"])
        twice = service.toggle(task["id"])
        assert once["completed"] is True
        assert twice["completed"] is task["completed"]
        assert task["updated_at"] < once["updated_at"] < twice["updated_at"]
        assert twice["created_at"] == task["created_at"]

    def test_update_without_completed_keeps_it(self, service):
        task = service.toggle(service.create("Original")["id"])
        updated = service.update(task["id"], "Renamed", None)
        assert updated["completed"] is True
        assert updated["title"] == "Renamed"
        assert updated["description"] is None
        assert service.get(task["id"]) == updated

    @pytest.mark.parametrize("value", [True, False])
    def test_update_with_completed_sets_it(self, service, value):
        task = service.create("Original")
        assert service.update(task["id"], "Original", "x", completed=value)["completed"] is value

    def test_update_missing_and_invalid(self, service):
        with pytest.raises(NotFoundError):
            service.update(uuid4(), "Valid title")
        task = service.create("Valid title")
        with pytest.raises(ValidationError):
            service.update(task["id"], "x")
        assert service.get(task["id"])["title"] == "Valid title"

    def test_delete_then_get_and_delete_again(self, service):
        task = service.create("Short lived")
        assert service.delete(task["id"]) is None
        with pytest.raises(NotFoundError):
            service.get(task["id"])
        with pytest.raises(NotFoundError):
            service.delete(task["id"])

    def test_updated_at_never_precedes_created_at(self, clock):
        service = TaskService(InMemoryRepository(), clock=clock)
        task = service.create("Clock skew")
        clock.now = task["created_at"] - timedelta(hours=1)
        toggled = service.toggle(task["id"])
        assert toggled["updated_at"] >= toggled["created_at"]

    def test_last_write_wins(self, service):
        task = service.create("Shared")
        service.update(task["id"], "First writer", None, completed=True)
        second = service.update(task["id"], "Second writer", "later")
        assert second["title"] == "Second writer"
        assert second["completed"] is True


class TestList:
    def test_twenty_five_tasks(self, service):
        seed(service, 25)
        pages = [service.list(page=p, size=10) for p in range(3)]
        assert [p["total_pages"] for p in pages] == [3, 3, 3]
        assert pages[0]["first"] is True and pages[0]["last"] is False
        assert pages[2]["last"] is True and pages[2]["first"] is False
        assert [len(p["content"]) for p in pages] == [10, 10, 5]

    def test_ordering_newest_first(self, service):
        tasks = seed(service, 5)
        content = service.list()["content"]
        assert [t["id"] for t in content] == [t["id"] for t in reversed(tasks)]

    def test_clamping(self, service):
        seed(service, 120)
        big = service.list(size=150)
        assert big["size"] == 100 and len(big["content"]) == 100
        assert service.list(size=0)["size"] == 10
        assert service.list(size=-3)["size"] == 10
        assert service.list(page=-1)["page"] == 0

    def test_completed_filter(self, service):
        seed(service, 9, completed_every=3)
        done = service.list(completed=True, size=100)
        assert done["total_elements"] == 3
        assert all(t["completed"] for t in done["content"])
        assert service.list(completed=False, size=100)["total_elements"] == 6

    def test_search_and_completed(self, service):
        milk = service.toggle(service.create("Buy milk")["id"])
        service.create("Oat MILK", "pending")
        service.toggle(service.create("Dentist", "also milk in description")["id"])
        service.toggle(service.create("Taxes")["id"])

        result = service.list(completed=True, search="Milk")
        assert {t["title"] for t in result["content"]} == {milk["title"], "Dentist"}
        assert service.list(search="milk")["total_elements"] == 3

    def test_stats(self, service):
        seed(service, 4, completed_every=2)
        assert service.stats() == {"total": 4, "completed": 2, "pending": 2}
