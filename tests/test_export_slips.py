"""
Tests for the command-line CSV export.
"""
import csv
import io

import pytest

import export_slips
from dal.slip_dal import SlipDAL, namespace_for
from models.image_record import ImageAsset
from services.orchestrator import build_extraction_result
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

from conftest import SAMPLE_FIELDS


@pytest.mark.asyncio
async def test_export_writes_bom_csv_for_one_caller(tmp_path):
    config = AppConfig(database_dir=str(tmp_path / "db"), app_id="cli-app",
                       viewer_base_url="http://localhost:8000")
    initializer = AsyncDatabaseInitializer(config.database_dir)
    mine = SlipDAL(initializer, namespace_for("cli-app", "me"))
    theirs = SlipDAL(initializer, namespace_for("cli-app", "them"))
    for dal, image_id in ((mine, "s1"), (mine, "s2"), (theirs, "x9")):
        await dal.create_asset(ImageAsset(id=image_id, image_bytes=b"img", mime_type="image/png"))
        await dal.save_extraction(build_extraction_result(image_id, SAMPLE_FIELDS))
    output = tmp_path / "out.csv"

    count = await export_slips.export("me", str(output), config)

    assert count == 2
    raw = output.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    rows = list(csv.reader(io.StringIO(raw.decode("utf-8-sig"))))
    assert [row[0] for row in rows[1:]] == ["s1", "s2"]
    assert rows[1][1] == "http://localhost:8000/image_viewer?imageId=s1&appId=cli-app&userId=me"


def test_main_requires_user_id():
    with pytest.raises(SystemExit):
        export_slips.main([])
