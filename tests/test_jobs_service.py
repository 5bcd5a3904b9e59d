import pytest

from voltbot.services.errors import AlreadyAssignedError, JobNotFoundError, NotAssignedError
from voltbot.services.jobs_service import AssignmentMode, JobsService


async def _post(service, *descriptions):
    return [(await service.add_job(d))["job_id"] for d in descriptions]


# ---------------------------------------------------------------------------
# Multi-assignee mode
# ---------------------------------------------------------------------------

async def test_random_assignment_never_repeats_a_job(jobs):
    job_ids = await _post(jobs, "Sweep", "Cook", "Guard")

    assigned = [await jobs.assign_random_job("alice") for _ in range(3)]

    assert sorted(job["job_id"] for job in assigned) == sorted(job_ids)
    assert await jobs.assign_random_job("alice") is None


async def test_other_users_can_share_a_job(jobs):
    [job_id] = await _post(jobs, "Sweep")

    assert (await jobs.assign_random_job("alice"))["job_id"] == job_id
    assert (await jobs.assign_random_job("bob"))["job_id"] == job_id

    [listing] = await jobs.get_job_list()
    assert listing["assignees"] == ["alice", "bob"]


async def test_complete_pays_and_frees_the_job(jobs, economy):
    [job_id] = await _post(jobs, "Sweep")
    await jobs.assign_random_job("alice")

    result = await jobs.complete_job("alice", 75, job_id)

    assert result["reward"] == 75
    assert (await economy.get_balances("alice"))["wallet"] == 75
    assert await jobs.get_user_jobs("alice") == []
    # the job stays on the board and can be taken again
    assert [job["job_id"] for job in await jobs.get_job_list()] == [job_id]
    assert (await jobs.assign_random_job("alice"))["job_id"] == job_id


async def test_complete_unheld_job(jobs, economy):
    [job_id] = await _post(jobs, "Sweep")

    with pytest.raises(NotAssignedError) as exc:
        await jobs.complete_job("alice", 50, job_id)

    assert exc.value.job_id == job_id
    assert (await economy.get_balances("alice"))["wallet"] == 0


async def test_multi_mode_needs_a_job_id(jobs):
    with pytest.raises(ValueError):
        await jobs.complete_job("alice", 10)


async def test_quit_pays_nothing(jobs, economy):
    [job_id] = await _post(jobs, "Sweep")
    await jobs.assign_random_job("alice")

    result = await jobs.quit_job("alice", job_id)

    assert result["reward"] == 0
    assert (await economy.get_balances("alice"))["wallet"] == 0
    assert await jobs.get_user_jobs("alice") == []


async def test_negative_reward_is_rejected(jobs):
    with pytest.raises(ValueError):
        await jobs.complete_job("alice", -1, 1)


async def test_remove_job_cascades_assignments(jobs, database):
    [job_id, other] = await _post(jobs, "Sweep", "Cook")
    await jobs.assign_random_job("alice")
    await jobs.assign_random_job("alice")

    removed = await jobs.remove_job(job_id)

    assert removed["description"] == "Sweep"
    assert [job["job_id"] for job in await jobs.get_user_jobs("alice")] == [other]
    rows = await database.fetch_all("SELECT * FROM job_assignments WHERE job_id = ?", job_id)
    assert rows == []


async def test_remove_unknown_job(jobs):
    with pytest.raises(JobNotFoundError):
        await jobs.remove_job(999)


async def test_multi_service_refuses_single_operations(jobs):
    with pytest.raises(RuntimeError):
        await jobs.assign_cycled_job("alice")
    with pytest.raises(RuntimeError):
        await jobs.assign_job("alice", 1)


# ---------------------------------------------------------------------------
# Single-assignee (cycled) mode
# ---------------------------------------------------------------------------

async def test_second_cycled_assignment_fails(single_jobs):
    await _post(single_jobs, "Sweep", "Cook")

    first = await single_jobs.assign_cycled_job("alice")
    with pytest.raises(AlreadyAssignedError) as exc:
        await single_jobs.assign_cycled_job("alice")

    assert exc.value.job_id == first["job_id"]
    assert await single_jobs.get_user_job("alice") == first


async def test_cycled_assignment_is_round_robin(single_jobs):
    job_ids = await _post(single_jobs, "Sweep", "Cook", "Guard")

    assigned = [(await single_jobs.assign_cycled_job(user))["job_id"] for user in ("a", "b", "c", "d")]

    assert assigned == job_ids + job_ids[:1]


async def test_cycled_assignment_on_empty_board(single_jobs):
    assert await single_jobs.assign_cycled_job("alice") is None


async def test_single_mode_completion_by_user(single_jobs, economy):
    await _post(single_jobs, "Sweep")
    await single_jobs.assign_cycled_job("alice")

    result = await single_jobs.complete_job("alice", 40)

    assert result["description"] == "Sweep"
    assert (await economy.get_balances("alice"))["wallet"] == 40
    assert await single_jobs.get_user_job("alice") is None
    # free for a new job again
    assert await single_jobs.assign_cycled_job("alice") is not None


async def test_single_mode_completion_without_job(single_jobs):
    with pytest.raises(NotAssignedError):
        await single_jobs.complete_job("alice", 10)


async def test_select_specific_job(single_jobs):
    [_, cook] = await _post(single_jobs, "Sweep", "Cook")

    job = await single_jobs.assign_job("alice", cook)

    assert job["description"] == "Cook"
    with pytest.raises(AlreadyAssignedError):
        await single_jobs.assign_job("alice", cook)
    with pytest.raises(JobNotFoundError):
        await single_jobs.assign_job("bob", 999)


async def test_single_service_refuses_random_assignment(single_jobs):
    with pytest.raises(RuntimeError):
        await single_jobs.assign_random_job("alice")


async def test_store_is_pinned_to_one_mode(database, economy, single_jobs):
    await single_jobs.add_job("Sweep")
    multi = JobsService(database, economy=economy, mode=AssignmentMode.MULTI)

    with pytest.raises(RuntimeError):
        await multi.add_job("Cook")


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        AssignmentMode.parse("both")
