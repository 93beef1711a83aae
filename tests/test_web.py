import re
from datetime import date, timedelta

from sqlalchemy import delete, select, text

from hr_console.db.persistence import Persistence
from hr_console.models.staged_form import StagedForm
from hr_console.models.user import User
from hr_console.staging import JobHistoryEntry

from tests.conftest import ADMIN_EMAIL, make_employee


async def read(session_factory, table, predicate=None, order_by=None):
    async with session_factory() as session:
        store = Persistence(session)
        if predicate:
            return await store.select_where(table, predicate, order_by=order_by)
        return await store.select_all(table, order_by=order_by)


def local_ids(html, base_url):
    return [int(m) for m in re.findall(re.escape(base_url) + r"/(\d+)/remove", html)]


def cookie_sizes(res):
    return [len(h) for h in res.headers.get_list("set-cookie")]


async def add_history(persistence, empno, count, job="DEV", dept="ENG"):
    start = date(2000, 1, 1)
    await persistence.insert(
        "jobhistory",
        [
            JobHistoryEntry(job, dept, start + timedelta(days=30 * i), salary=50000 + i).to_row(empno)
            for i in range(count)
        ],
    )
    await persistence.commit()


class TestAuth:
    async def test_screens_require_login(self, client):
        for path in ("/", "/employees", "/departments", "/jobs", "/jobhistories", "/employees/new"):
            res = await client.get(path)
            assert res.status_code == 302, path
            assert res.headers["location"] == "/login"

    async def test_bad_password(self, client, admin_user):
        res = await client.post("/login", data={"email": ADMIN_EMAIL, "password": "wrong"})
        assert res.status_code == 401
        assert "Invalid email or password" in res.text

    async def test_logout_clears_session(self, signed_in):
        res = await signed_in.get("/logout")
        assert res.status_code == 302

        res = await signed_in.get("/")
        assert res.headers["location"] == "/login"

    async def test_removed_account_is_signed_out(self, signed_in, session_factory, admin_user):
        async with session_factory() as session:
            await session.execute(delete(User).where(User.id == admin_user))
            await session.commit()

        res = await signed_in.get("/")
        assert res.status_code == 302
        assert res.headers["location"] == "/login"

        res = await signed_in.get("/employees")
        assert res.headers["location"] == "/login"


async def test_dashboard_counts(signed_in, persistence, reference_rows):
    await make_employee(persistence, "1001")

    res = await signed_in.get("/")

    assert res.status_code == 200
    assert "Total Employees" in res.text
    assert f"Signed in as {ADMIN_EMAIL} (admin)" in res.text
    assert "<strong>1</strong>" in res.text
    assert "<strong>3</strong>" in res.text


class TestDepartmentsAndJobs:
    async def test_create_search_update_delete_department(self, signed_in, session_factory):
        res = await signed_in.post("/departments/new", data={"deptcode": "FIN", "deptname": "Finance"})
        assert res.status_code == 302
        await signed_in.post("/departments/new", data={"deptcode": "HR", "deptname": "People"})

        res = await signed_in.get("/departments", params={"q": "fin"})
        assert "Department Added" in res.text
        assert "Finance" in res.text
        assert "People" not in res.text

        await signed_in.post("/departments/FIN/edit", data={"deptname": "Finance & Accounting"})
        rows = await read(session_factory, "department", {"deptcode": "FIN"})
        assert rows[0]["deptname"] == "Finance & Accounting"

        await signed_in.post("/departments/FIN/delete")
        assert await read(session_factory, "department", {"deptcode": "FIN"}) == []

    async def test_duplicate_department_is_reported(self, signed_in, reference_rows):
        await signed_in.post("/departments/new", data={"deptcode": "ENG", "deptname": "Again"})

        res = await signed_in.get("/departments")
        assert "Failed to add department" in res.text

    async def test_job_in_use_cannot_be_deleted(self, signed_in, persistence, reference_rows, session_factory):
        await make_employee(persistence, "1001")
        await persistence.insert("jobhistory", [JobHistoryEntry("DEV", "ENG", date(2024, 1, 1)).to_row("1001")])
        await persistence.commit()

        await signed_in.post("/jobs/DEV/delete")

        res = await signed_in.get("/jobs")
        assert "Failed to delete job" in res.text
        assert await read(session_factory, "job", {"jobcode": "DEV"})


class TestNewEmployeeForm:
    BASE = "/employees/new/history"

    async def test_stage_and_commit(self, signed_in, reference_rows, session_factory):
        res = await signed_in.get("/employees/new")
        assert res.status_code == 200
        assert 'value="1001"' in res.text

        await signed_in.post(
            f"{self.BASE}/add",
            data={"job_code": "DEV", "department_code": "ENG", "effective_date": "2024-01-15", "salary": "90000"},
        )
        await signed_in.post(
            f"{self.BASE}/add",
            data={"job_code": "MGR", "department_code": "OPS", "effective_date": "2024-03-01", "salary": ""},
        )

        res = await signed_in.post(
            "/employees/new",
            data={"empno": "1001", "firstname": "Grace", "lastname": "Hopper", "gender": "F", "hiredate": "2024-01-02"},
        )
        assert res.status_code == 302
        assert res.headers["location"] == "/employees/1001"

        rows = await read(session_factory, "jobhistory", {"empno": "1001"}, order_by="effdate")
        assert [(r["jobcode"], r["deptcode"], r["salary"]) for r in rows] == [
            ("DEV", "ENG", 90000),
            ("MGR", "OPS", None),
        ]

        res = await signed_in.get("/employees/1001")
        assert "Employee Added" in res.text
        assert "Developer" in res.text

        # form was flushed: a new one starts empty with the next number
        res = await signed_in.get("/employees/new")
        assert 'value="1002"' in res.text
        assert local_ids(res.text, self.BASE) == []

    async def test_missing_job_is_reported_and_list_unchanged(self, signed_in, reference_rows):
        await signed_in.get("/employees/new")
        await signed_in.post(
            f"{self.BASE}/add",
            data={"job_code": "DEV", "department_code": "ENG", "effective_date": "2024-01-15"},
        )
        await signed_in.post(
            f"{self.BASE}/add",
            data={"job_code": "", "department_code": "ENG", "effective_date": "2024-02-01"},
        )

        res = await signed_in.get("/employees/new")
        assert "Missing job" in res.text
        assert len(local_ids(res.text, self.BASE)) == 1

    async def test_edit_and_remove_staged_entry(self, signed_in, reference_rows):
        await signed_in.get("/employees/new")
        for job in ("DEV", "MGR"):
            await signed_in.post(
                f"{self.BASE}/add",
                data={"job_code": job, "department_code": "ENG", "effective_date": "2024-01-15"},
            )
        res = await signed_in.get("/employees/new")
        first, second = local_ids(res.text, self.BASE)

        res = await signed_in.post(
            f"{self.BASE}/{first}/edit",
            data={"job_code": "SR_DEV", "department_code": "ENG", "effective_date": "2024-06-01", "salary": "105000"},
        )
        assert res.status_code == 302
        await signed_in.post(f"{self.BASE}/{second}/remove")

        res = await signed_in.get("/employees/new")
        assert local_ids(res.text, self.BASE) == [first]
        assert 'value="2024-06-01"' in res.text

    async def test_stale_local_id_is_404(self, signed_in, reference_rows):
        await signed_in.get("/employees/new")

        res = await signed_in.post(f"{self.BASE}/987654321/remove")
        assert res.status_code == 404

    async def test_failed_save_keeps_staged_entries(self, signed_in, persistence, reference_rows, session_factory):
        await make_employee(persistence, "1001")
        await signed_in.get("/employees/new")
        await signed_in.post(
            f"{self.BASE}/add",
            data={"job_code": "DEV", "department_code": "ENG", "effective_date": "2024-01-15"},
        )

        res = await signed_in.post(
            "/employees/new",
            data={"empno": "1001", "firstname": "Dup", "hiredate": "2024-01-02"},
        )
        assert res.headers["location"] == "/employees/new"

        res = await signed_in.get("/employees/new")
        assert "Failed to add employee" in res.text
        assert 'value="Dup"' in res.text
        assert len(local_ids(res.text, self.BASE)) == 1
        assert await read(session_factory, "jobhistory") == []

    async def test_cancel_discards_form(self, signed_in, reference_rows):
        await signed_in.get("/employees/new")
        await signed_in.post(
            f"{self.BASE}/add",
            data={"job_code": "DEV", "department_code": "ENG", "effective_date": "2024-01-15"},
        )

        await signed_in.post("/employees/new/cancel")

        res = await signed_in.get("/employees/new")
        assert local_ids(res.text, self.BASE) == []


class TestHistoryDialog:
    async def test_replace_all_on_save(self, signed_in, persistence, reference_rows, session_factory):
        await make_employee(persistence, "2000")
        await persistence.insert(
            "jobhistory",
            [
                JobHistoryEntry("DEV", "ENG", date(2019, 1, 1)).to_row("2000"),
                JobHistoryEntry("MGR", "OPS", date(2021, 1, 1)).to_row("2000"),
            ],
        )
        await persistence.commit()
        base = "/employees/2000/history"

        res = await signed_in.get(base, params={"reload": "1"})
        assert res.status_code == 200
        newest, oldest = local_ids(res.text, base)

        await signed_in.post(f"{base}/{oldest}/remove")
        await signed_in.post(
            f"{base}/add",
            data={"job_code": "SR_DEV", "department_code": "ENG", "effective_date": "2023-05-01", "salary": "110000"},
        )
        res = await signed_in.post(f"{base}/save")
        assert res.headers["location"] == "/employees/2000"

        rows = await read(session_factory, "jobhistory", {"empno": "2000"}, order_by="effdate")
        assert [(r["jobcode"], r["effdate"]) for r in rows] == [
            ("MGR", date(2021, 1, 1)),
            ("SR_DEV", date(2023, 5, 1)),
        ]

        res = await signed_in.get("/employees/2000")
        assert "Job History Saved" in res.text

    async def test_unknown_employee(self, signed_in, reference_rows):
        res = await signed_in.get("/employees/9999/history")
        assert res.status_code == 404


async def test_job_histories_screen(signed_in, persistence, reference_rows):
    await make_employee(persistence, "1001", firstname="Grace", lastname="Hopper")
    await make_employee(persistence, "1002", firstname="Alan", lastname="Turing")
    await persistence.insert(
        "jobhistory",
        [
            JobHistoryEntry("DEV", "ENG", date(2020, 1, 1)).to_row("1001"),
            JobHistoryEntry("MGR", "OPS", date(2022, 1, 1)).to_row("1002"),
        ],
    )
    await persistence.commit()

    res = await signed_in.get("/jobhistories")
    assert res.text.index("Alan Turing") < res.text.index("Grace Hopper")

    res = await signed_in.get("/jobhistories", params={"q": "engineering"})
    assert "Grace Hopper" in res.text
    assert "Alan Turing" not in res.text


class TestStagedFormState:
    async def test_long_history_keeps_the_cookie_small(self, signed_in, persistence, reference_rows):
        await make_employee(persistence, "3000")
        await add_history(persistence, "3000", 30)
        base = "/employees/3000/history"

        res = await signed_in.get(base, params={"reload": "1"})
        assert res.status_code == 200
        assert len(local_ids(res.text, base)) == 30
        assert all(size <= 4096 for size in cookie_sizes(res))

        res = await signed_in.post(
            f"{base}/add",
            data={"job_code": "MGR", "department_code": "OPS", "effective_date": "2024-01-01", "salary": "99000"},
        )
        assert all(size <= 4096 for size in cookie_sizes(res))

        res = await signed_in.get(base)
        assert len(local_ids(res.text, base)) == 31

    async def test_many_open_dialogs_keep_their_edits(self, signed_in, persistence, reference_rows):
        empnos = [str(3100 + i) for i in range(8)]
        for empno in empnos:
            await make_employee(persistence, empno)
            await add_history(persistence, empno, 5)

        first = f"/employees/{empnos[0]}/history"
        res = await signed_in.get(first, params={"reload": "1"})
        staged = local_ids(res.text, first)
        await signed_in.post(f"{first}/{staged[0]}/remove")

        # leave through the nav and open the rest without closing anything
        for empno in empnos[1:]:
            res = await signed_in.get(f"/employees/{empno}/history", params={"reload": "1"})
            assert all(size <= 4096 for size in cookie_sizes(res))

        res = await signed_in.get(first)
        assert local_ids(res.text, first) == staged[1:]

    async def test_logout_drops_staged_forms(self, signed_in, persistence, reference_rows, session_factory):
        await make_employee(persistence, "3200")
        await signed_in.get("/employees/3200/history", params={"reload": "1"})
        await signed_in.get("/employees/new")

        await signed_in.get("/logout")

        async with session_factory() as session:
            res = await session.execute(select(StagedForm.id))
            assert res.all() == []


class TestEmployeeScreens:
    async def test_view_lists_history_newest_first(self, signed_in, persistence, reference_rows):
        await make_employee(persistence, "4000", firstname="Grace", lastname="Hopper")
        await persistence.insert(
            "jobhistory",
            [
                JobHistoryEntry("DEV", "ENG", date(2019, 1, 1)).to_row("4000"),
                JobHistoryEntry("MGR", "OPS", date(2023, 1, 1), salary=120000).to_row("4000"),
            ],
        )
        await persistence.commit()

        res = await signed_in.get("/employees/4000")

        assert res.status_code == 200
        assert "Grace Hopper" in res.text
        assert res.text.index("2023-01-01") < res.text.index("2019-01-01")
        assert "Manager" in res.text
        assert "Operations" in res.text

    async def test_view_unknown_employee(self, signed_in):
        res = await signed_in.get("/employees/9999")
        assert res.status_code == 404

    async def test_edit_employee(self, signed_in, persistence, session_factory):
        await make_employee(persistence, "4001")
        data = {"firstname": "Ada", "lastname": "Byron", "gender": "F", "hiredate": "2021-02-01", "sepdate": ""}

        res = await signed_in.post("/employees/4001/edit", data=data)
        assert res.status_code == 302
        assert res.headers["location"] == "/employees/4001"

        rows = await read(session_factory, "employee", {"empno": "4001"})
        assert (rows[0]["lastname"], rows[0]["hiredate"]) == ("Byron", date(2021, 2, 1))

        res = await signed_in.get("/employees/4001")
        assert "Employee Updated" in res.text

    async def test_edit_rejects_bad_input_and_keeps_row(self, signed_in, persistence, session_factory):
        await make_employee(persistence, "4002")

        await signed_in.post("/employees/4002/edit", data={"firstname": "X", "gender": "Q", "hiredate": "2021-02-01"})
        res = await signed_in.get("/employees/4002")
        assert "Gender must be M, F or O" in res.text

        await signed_in.post("/employees/4002/edit", data={"firstname": "X", "hiredate": ""})
        res = await signed_in.get("/employees/4002")
        assert "Hire date is required" in res.text

        rows = await read(session_factory, "employee", {"empno": "4002"})
        assert rows[0]["firstname"] == "Ada"

    async def test_edit_unknown_employee(self, signed_in):
        res = await signed_in.post("/employees/9999/edit", data={"hiredate": "2021-02-01"})
        assert res.status_code == 404

    async def test_delete_cascades_to_job_history(self, signed_in, persistence, reference_rows, session_factory):
        await make_employee(persistence, "4003")
        await add_history(persistence, "4003", 3)

        res = await signed_in.post("/employees/4003/delete")
        assert res.headers["location"] == "/employees"

        assert await read(session_factory, "employee", {"empno": "4003"}) == []
        assert await read(session_factory, "jobhistory", {"empno": "4003"}) == []

        res = await signed_in.get("/employees")
        assert "Employee deleted" in res.text


class TestStagingInputErrors:
    async def test_unparseable_salary_is_an_inline_error(self, signed_in, reference_rows):
        await signed_in.get("/employees/new")

        res = await signed_in.post(
            "/employees/new/history/add",
            data={"job_code": "DEV", "department_code": "ENG", "effective_date": "2024-01-15", "salary": "sNaN"},
        )
        assert res.status_code == 302

        res = await signed_in.get("/employees/new")
        assert "Invalid salary" in res.text
        assert local_ids(res.text, "/employees/new/history") == []

    async def test_reference_data_unavailable_disables_staging(self, signed_in, engine):
        async with engine.begin() as conn:
            await conn.execute(text("DROP TABLE job"))

        res = await signed_in.get("/employees/new")

        assert res.status_code == 200
        assert "Error fetching data" in res.text
        assert "<fieldset disabled>" in res.text

    async def test_history_row_without_department_must_be_fixed_before_saving(
        self, signed_in, persistence, reference_rows, session_factory
    ):
        await make_employee(persistence, "4004")
        await persistence.insert(
            "jobhistory",
            [{"empno": "4004", "jobcode": "DEV", "deptcode": None, "effdate": date(2019, 1, 1), "salary": None}],
        )
        await persistence.commit()
        base = "/employees/4004/history"

        res = await signed_in.get(base, params={"reload": "1"})
        (staged,) = local_ids(res.text, base)

        res = await signed_in.post(f"{base}/save")
        assert res.headers["location"] == base
        res = await signed_in.get(base)
        assert "Failed to save job history" in res.text
        assert "department_code is required" in res.text

        await signed_in.post(
            f"{base}/{staged}/edit",
            data={"job_code": "DEV", "department_code": "OPS", "effective_date": "2019-01-01"},
        )
        res = await signed_in.post(f"{base}/save")
        assert res.headers["location"] == "/employees/4004"

        rows = await read(session_factory, "jobhistory", {"empno": "4004"})
        assert [(r["jobcode"], r["deptcode"]) for r in rows] == [("DEV", "OPS")]
