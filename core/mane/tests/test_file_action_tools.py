import os

import pytest

from mane.tools.base import FileAction, FileActionType
from mane.tools.file_actions import (
    CopyFileTool,
    CreateFolderTool,
    DeleteFileTool,
    DeleteFolderTool,
    MoveFileTool,
    RenameFileTool,
)
from mane.tools.find_files import FindFilesTool


@pytest.mark.asyncio
async def test_move_into_folder_keeps_file_name(tmp_path):
    src = tmp_path / "cat.jpg"
    src.write_text("meow")
    dest_dir = tmp_path / "cats"

    result = await MoveFileTool().execute({
        "source_path": str(src),
        "destination_path": str(dest_dir),
    })

    action = result.proposed_action
    assert result.success
    assert action.type == FileActionType.MOVE
    assert action.source_path == str(src)
    assert action.destination_path == str(dest_dir / "cat.jpg")
    assert action.requires_permission == str(dest_dir)
    # Proposal only: nothing moved
    assert src.exists()
    assert not dest_dir.exists()


@pytest.mark.asyncio
async def test_copy_to_explicit_file_name():
    result = await CopyFileTool().execute({
        "source_path": "/a/report.pdf",
        "destination_path": "/b/report-copy.pdf",
    })

    assert result.proposed_action.type == FileActionType.COPY
    assert result.proposed_action.destination_path == "/b/report-copy.pdf"


@pytest.mark.asyncio
async def test_move_missing_destination_fails():
    result = await MoveFileTool().execute({"source_path": "/a/x.txt"})

    assert result.success is False
    assert "destination_path" in result.error
    assert result.proposed_action is None


@pytest.mark.asyncio
async def test_move_onto_itself_fails():
    result = await MoveFileTool().execute({
        "source_path": "/a/x.txt",
        "destination_path": "/a",
    })

    assert result.success is False


@pytest.mark.asyncio
async def test_rename_stays_in_folder():
    result = await RenameFileTool().execute({"file_path": "/docs/old.txt", "new_name": "new.txt"})

    action = result.proposed_action
    assert action.type == FileActionType.RENAME
    assert action.source_path == "/docs/old.txt"
    assert action.destination_path == "/docs/new.txt"


@pytest.mark.asyncio
async def test_rename_rejects_paths():
    result = await RenameFileTool().execute({"file_path": "/docs/old.txt", "new_name": "../new.txt"})

    assert result.success is False


@pytest.mark.asyncio
async def test_delete_and_folder_tools():
    delete = (await DeleteFileTool().execute({"file_path": "/docs/old.txt"})).proposed_action
    create = (await CreateFolderTool().execute({"folder_path": "/docs/new"})).proposed_action
    remove = (await DeleteFolderTool().execute({"folder_path": "/docs/empty"})).proposed_action

    assert delete.type == FileActionType.DELETE and delete.source_path == "/docs/old.txt"
    assert create.type == FileActionType.CREATE_FOLDER and create.destination_path == "/docs/new"
    assert create.source_path is None
    assert remove.type == FileActionType.DELETE_FOLDER and remove.source_path == "/docs/empty"


@pytest.mark.asyncio
async def test_home_is_expanded():
    result = await CreateFolderTool().execute({"folder_path": "~/Sorted"})

    assert result.proposed_action.destination_path == os.path.join(os.path.expanduser("~"), "Sorted")


@pytest.mark.asyncio
async def test_action_ids_are_unique():
    tool = DeleteFileTool()
    ids = {
        (await tool.execute({"file_path": f"/x/{i}.txt"})).proposed_action.id
        for i in range(20)
    }

    assert len(ids) == 20


def test_file_action_wire_format():
    action = FileAction(
        id="action_1",
        type="createFolder",
        description="Create folder",
        destination_path="/a/b",
    )

    data = action.to_dict()

    assert data == {
        "id": "action_1",
        "type": "createFolder",
        "description": "Create folder",
        "destinationPath": "/a/b",
    }
    assert FileAction.from_dict(data) == action


def test_file_action_requires_paths():
    with pytest.raises(ValueError):
        FileAction(id="a", type=FileActionType.MOVE, description="", source_path="/x")
    with pytest.raises(ValueError):
        FileAction(id="a", type="teleport", description="", source_path="/x")


@pytest.mark.asyncio
async def test_find_files_returns_ranked_matches(index):
    result = await FindFilesTool(index).execute({"query": "cats", "media_type": "image", "limit": 5})

    assert result.success
    assert result.data["total_found"] == 2
    assert [f["file_name"] for f in result.data["files"]] == ["cat1.jpg", "cat2.jpg"]
    assert result.proposed_action is None


@pytest.mark.asyncio
async def test_find_files_validates_input(index):
    tool = FindFilesTool(index)

    assert (await tool.execute({})).success is False
    assert (await tool.execute({"query": "x", "limit": 0})).success is False
    assert (await tool.execute({"query": "x", "media_type": "video"})).success is False
