# app/tests/test_export.py
import io

import pandas as pd

from app.db.enums import JobStatus, UserRole
from app.services.job_service import EXPORT_COLUMNS


def test_export_needs_capability(make_user, login):
    res = login(make_user(UserRole.Drafter)).get("/jobs/export")
    assert res.status_code == 403


def test_export_writes_filtered_workbook(make_user, make_job, login):
    pm = make_user(UserRole.ProjectManager, name="Pete")
    make_job(job_number="LP-001", job_name="Wet Well", project_manager_id=pm.id, quoted_amount=1500)
    make_job(job_number="LP-002", status=JobStatus.Drafting)

    res = login(pm).get("/jobs/export?status=Estimation")
    assert res.status_code == 200
    assert res.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    assert "attachment" in res.headers["Content-Disposition"]

    df = pd.read_excel(io.BytesIO(res.data), sheet_name="Jobs")
    assert list(df.columns) == EXPORT_COLUMNS
    assert df["Job Number"].tolist() == ["LP-001"]
    row = df.iloc[0]
    assert row["Job Name"] == "Wet Well"
    assert row["Customer"] == "Acme Precast"
    assert row["Project Manager"] == "Pete"
    assert row["Quoted Amount"] == 1500
