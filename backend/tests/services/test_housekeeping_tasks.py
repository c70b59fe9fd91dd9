"""
清洁任务服务测试
"""
import pytest

from keycard.models.ontology import HousekeepingTask, RoomStatus, TaskStatus
from keycard.models.events import EventType
from keycard.models.schemas import TaskCreate, TaskUpdate
from keycard.services.task_service import TaskService


@pytest.fixture
def events():
    return []


@pytest.fixture
def service(db_session, events):
    return TaskService(db_session, event_publisher=events.append)


@pytest.fixture
def task(service, sample_room, housekeeping_user):
    return service.create_task(TaskCreate(
        task_name="  Deep clean  ", room_id=sample_room.id, assignee_id=housekeeping_user.id
    ))


class TestCreateTask:

    def test_create(self, task, events, sample_room):
        assert task.status == TaskStatus.PENDING
        assert task.task_name == "Deep clean"
        assert task.room_id == sample_room.id
        assert events[-1].type_key == EventType.TASK_CREATED.value

    def test_unknown_room(self, service):
        with pytest.raises(ValueError):
            service.create_task(TaskCreate(task_name="x", room_id=999))

    def test_assignee_must_be_housekeeping(self, service, sample_room, front_desk_user):
        with pytest.raises(ValueError):
            service.create_task(TaskCreate(task_name="x", room_id=sample_room.id, assignee_id=front_desk_user.id))

    def test_admin_can_be_assigned(self, service, sample_room, admin_user):
        task = service.create_task(TaskCreate(task_name="x", room_id=sample_room.id, assignee_id=admin_user.id))
        assert task.assignee_id == admin_user.id


class TestUpdateTask:

    def test_status_string_is_case_insensitive(self, service, task, db_session, sample_room):
        sample_room.status = RoomStatus.DIRTY
        db_session.commit()

        updated = service.update_task(task.id, TaskUpdate(status="inprogress"))

        assert updated.status == TaskStatus.IN_PROGRESS
        db_session.refresh(sample_room)
        assert sample_room.status == RoomStatus.CLEANING

    def test_unknown_status_rejected(self, service, task):
        with pytest.raises(ValueError):
            service.update_task(task.id, TaskUpdate(status="Paused"))

    def test_complete_via_update_publishes_once(self, service, task, events):
        service.update_task(task.id, TaskUpdate(status="Completed"))
        service.update_task(task.id, TaskUpdate(notes="checked minibar"))

        completed = [e for e in events if e.type_key == EventType.TASK_COMPLETED.value]
        assert len(completed) == 1

    def test_completed_task_cannot_reopen(self, service, task):
        service.complete_task(task.id)
        with pytest.raises(ValueError):
            service.update_task(task.id, TaskUpdate(status="Pending"))

    def test_blank_name_rejected(self, service, task):
        with pytest.raises(ValueError):
            service.update_task(task.id, TaskUpdate(task_name="   "))

    def test_invalid_assignee_leaves_task_untouched(self, service, task, front_desk_user, db_session):
        with pytest.raises(ValueError):
            service.update_task(task.id, TaskUpdate(task_name="Renamed", notes="n", assignee_id=front_desk_user.id))

        assert not db_session.dirty
        db_session.refresh(task)
        assert task.task_name == "Deep clean"
        assert task.notes is None

    def test_invalid_transition_leaves_task_untouched(self, service, task, db_session):
        service.complete_task(task.id)
        with pytest.raises(ValueError):
            service.update_task(task.id, TaskUpdate(task_name="Renamed", status="Pending"))

        assert not db_session.dirty
        db_session.refresh(task)
        assert task.task_name == "Deep clean"

    def test_missing_task(self, service):
        with pytest.raises(ValueError):
            service.update_task(999, TaskUpdate(notes="x"))


class TestCompleteAndDelete:

    def test_complete_sets_timestamp(self, service, task, events):
        done = service.complete_task(task.id)
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at is not None
        assert events[-1].type_key == EventType.TASK_COMPLETED.value
        assert events[-1].data["room_id"] == task.room_id

    def test_complete_twice_is_idempotent(self, service, task, events):
        service.complete_task(task.id)
        count = len(events)
        again = service.complete_task(task.id)
        assert again.status == TaskStatus.COMPLETED
        assert len(events) == count

    def test_delete_cancels(self, service, task, db_session):
        deleted = service.delete_task(task.id)
        assert deleted.status == TaskStatus.CANCELLED
        assert db_session.query(HousekeepingTask).count() == 1

    def test_delete_completed_rejected(self, service, task):
        service.complete_task(task.id)
        with pytest.raises(ValueError):
            service.delete_task(task.id)

    def test_cancelled_task_cannot_complete(self, service, task):
        service.delete_task(task.id)
        with pytest.raises(ValueError):
            service.complete_task(task.id)


class TestListTasks:

    def test_cancelled_hidden_by_default(self, service, sample_room):
        keep = service.create_task(TaskCreate(task_name="a", room_id=sample_room.id))
        gone = service.create_task(TaskCreate(task_name="b", room_id=sample_room.id))
        service.delete_task(gone.id)

        assert [t.id for t in service.get_tasks()] == [keep.id]
        assert {t.id for t in service.get_tasks(include_cancelled=True)} == {keep.id, gone.id}
        assert [t.id for t in service.get_tasks(status=TaskStatus.CANCELLED)] == [gone.id]

    def test_filter_by_assignee(self, service, task, sample_room):
        service.create_task(TaskCreate(task_name="unassigned", room_id=sample_room.id))
        assert [t.id for t in service.get_tasks(assignee_id=task.assignee_id)] == [task.id]

    def test_detail(self, service, task):
        detail = service.get_task_detail(task.id)
        assert detail["room_number"] == "101"
        assert detail["assignee_name"] == "Hana Keeping"
        assert service.get_task_detail(999) is None
