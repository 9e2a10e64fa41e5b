import pytest
import boto3
from botocore.stub import Stubber

from ec2_metadatafs.client.exceptions import BackendIOError, NotDirectoryError, NotFoundError
from ec2_metadatafs.client.tags import TagClient
from ec2_metadatafs.client.types import DIRECTORY_SIZE, NodeKind
from ec2_metadatafs.fuse.tagsfs import TagsFs

INSTANCE_ID = "i-123456"
TAGS = {"name": "MyName", "role": "MyRole"}

@pytest.fixture
def ec2():
    return boto3.client(
        "ec2",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )

@pytest.fixture
def stubber(ec2):
    with Stubber(ec2) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()

@pytest.fixture
def fs(ec2, stubber):
    return TagsFs(TagClient(INSTANCE_ID, ec2=ec2))

def tag_descriptions(tags):
    return [
        {"Key": key, "Value": value, "ResourceId": INSTANCE_ID, "ResourceType": "instance"}
        for key, value in tags.items()
    ]

def expect_tag(stubber, key, tags=TAGS):
    matching = {k: v for k, v in tags.items() if k == key}
    stubber.add_response(
        "describe_tags",
        {"Tags": tag_descriptions(matching)},
        {"Filters": [
            {"Name": "key", "Values": [key]},
            {"Name": "resource-id", "Values": [INSTANCE_ID]},
        ]},
    )

def expect_all_tags(stubber, tags=TAGS, next_token=None, page_token=None):
    response = {"Tags": tag_descriptions(tags)}
    if next_token:
        response["NextToken"] = next_token
    params = {"Filters": [{"Name": "resource-id", "Values": [INSTANCE_ID]}]}
    if page_token:
        params["NextToken"] = page_token
    stubber.add_response("describe_tags", response, params)

def test_attributes_root(fs):
    attr = fs.attributes("")
    assert attr.kind is NodeKind.DIRECTORY
    assert attr.size == DIRECTORY_SIZE

def test_attributes_tag(fs, stubber):
    expect_tag(stubber, "name")
    attr = fs.attributes("name")
    assert attr.kind is NodeKind.FILE
    assert attr.size == 6

def test_attributes_size_counts_bytes(fs, stubber):
    expect_tag(stubber, "city", {"city": "Zürich"})
    assert fs.attributes("city").size == 7

def test_attributes_missing_tag(fs, stubber):
    expect_tag(stubber, "owner")
    with pytest.raises(NotFoundError):
        fs.attributes("owner")

def test_listing(fs, stubber):
    expect_all_tags(stubber)
    entries = fs.listing("")
    assert [e.name for e in entries] == ["name", "role"]
    assert all(e.kind is NodeKind.FILE for e in entries)

def test_listing_follows_pagination(fs, stubber):
    expect_all_tags(stubber, {"name": "MyName"}, next_token="page-2")
    expect_all_tags(stubber, {"role": "MyRole"}, page_token="page-2")
    assert [e.name for e in fs.listing("")] == ["name", "role"]

def test_listing_below_root_is_not_a_directory(fs):
    with pytest.raises(NotDirectoryError):
        fs.listing("name")

def test_read_file(fs, stubber):
    expect_tag(stubber, "role")
    assert fs.read_file("role") == b"MyRole"

def test_read_missing_tag(fs, stubber):
    expect_tag(stubber, "owner")
    with pytest.raises(NotFoundError):
        fs.read_file("owner")

def test_api_error_is_io_error(fs, stubber):
    stubber.add_client_error("describe_tags", service_error_code="UnauthorizedOperation",
                                 http_status_code=403)
    stubber.add_client_error("describe_tags", service_error_code="InternalError",
                                 http_status_code=500)
    with pytest.raises(BackendIOError):
        fs.attributes("name")
    with pytest.raises(BackendIOError):
        fs.listing("")

def test_statfs_is_zero(fs):
    assert set(fs.statfs().values()) == {0}
