import json
import typing
from unittest.mock import Mock

import boto3
import pytest
from moto import mock_aws

from rally_roster.access.identity_resolver import IdentityResolver
from rally_roster.dynamodb.kids_table import KidsTable
from rally_roster.lambdas.kids_lambda import KidsApiHandler
from rally_roster.models.identity_models import IdentityContext
from rally_roster.models.kid_models import KidModel
from rally_roster.models.role_models import Role
from rally_roster.models.user_profile_models import UserProfileModel
from rally_roster.utils.base_types import InstructorId, KidId, UserId

from ..test_utils.authorizer import add_authorizer_info


def create_kids_event(
    user_id_str: typing.Optional[str],
    method: str = "GET",
    kid_id: typing.Optional[str] = None,
    body: typing.Optional[dict] = None,
) -> dict:
    path = f"/kids/{kid_id}" if kid_id else "/kids"
    event: dict = {
        "requestContext": {"http": {"method": method, "path": path}},
        "pathParameters": {"kidId": kid_id} if kid_id else None,
        "body": json.dumps(body) if body is not None else None,
    }
    if user_id_str is not None:
        add_authorizer_info(event, user_id_str)
    return event


def resolver_for(identity: IdentityContext) -> Mock:
    resolver = Mock()
    resolver.resolve.return_value = identity
    return resolver


def create_kids_api_handler(kids_table=Mock(), identity_resolver=Mock()) -> KidsApiHandler:
    handler = KidsApiHandler(kids_table=kids_table, identity_resolver=identity_resolver)
    assert handler.kids_table == kids_table
    assert handler.identity_resolver == identity_resolver
    return handler


def make_kid(kid_id: str = "k1", **overrides) -> KidModel:
    data = {
        "kidId": kid_id,
        "participantNumber": "12",
        "personalInfo": {"firstName": "Noa", "lastName": "Levi", "dateOfBirth": "2015-04-02"},
        "parentInfo": {"name": "Dana", "email": "dana@example.com", "parentIds": ["P1"]},
        "comments": {"parent": "hi", "teamLeader": "good driver"},
        "instructorId": "I1",
    }
    data.update(overrides)
    return KidModel.model_validate(data)


PARENT = IdentityContext(role=Role.PARENT, accountId=UserId("P1"))
OTHER_PARENT = IdentityContext(role=Role.PARENT, accountId=UserId("P2"))
INSTRUCTOR = IdentityContext(role=Role.INSTRUCTOR, accountId=UserId("U5"), instructorId=InstructorId("I1"))
ADMIN = IdentityContext(role=Role.ADMIN, accountId=UserId("A1"))


def test_handler_initialization():
    create_kids_api_handler()


def test_handle_unauthorized_access():
    handler = create_kids_api_handler()
    response = handler.handle(create_kids_event(None))

    assert response["statusCode"] == 401
    assert "User identification failed" in json.loads(response["body"])["message"]


def test_handle_unsupported_method():
    handler = create_kids_api_handler(identity_resolver=resolver_for(ADMIN))
    response = handler.handle(create_kids_event("A1", method="DELETE", kid_id="k1"))

    assert response["statusCode"] == 404


def test_list_kids_filters_records_and_fields():
    kids_table = Mock()
    kids_table.list_kids.return_value = [make_kid("k1"), make_kid("k2", parentInfo={"parentIds": ["P9"]})]

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(PARENT))
    response = handler.handle(create_kids_event("P1"))

    assert response["statusCode"] == 200
    kids = json.loads(response["body"])["kids"]
    assert [kid["kidId"] for kid in kids] == ["k1"]
    assert "teamLeader" not in kids[0]["comments"]
    assert "instructorId" not in kids[0]


def test_list_kids_for_instructor():
    kids_table = Mock()
    kids_table.list_kids.return_value = [make_kid("k1"), make_kid("k2", instructorId="I2")]

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(INSTRUCTOR))
    response = handler.handle(create_kids_event("U5"))

    kids = json.loads(response["body"])["kids"]
    assert [kid["kidId"] for kid in kids] == ["k1"]
    assert "email" not in kids[0]["parentInfo"]


def test_get_kid_not_found():
    kids_table = Mock()
    kids_table.get_kid.return_value = None

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(ADMIN))
    response = handler.handle(create_kids_event("A1", kid_id="missing"))

    assert response["statusCode"] == 404
    kids_table.get_kid.assert_called_once_with(KidId("missing"))


def test_get_kid_forbidden_is_not_an_empty_record():
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(OTHER_PARENT))
    response = handler.handle(create_kids_event("P2", kid_id="k1"))

    assert response["statusCode"] == 403
    assert json.loads(response["body"])["errorCode"] == "AUTHORIZATION_FAILED"


def test_get_kid_as_parent():
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(PARENT))
    response = handler.handle(create_kids_event("P1", kid_id="k1"))

    assert response["statusCode"] == 200
    body = json.loads(response["body"])
    assert body["kidId"] == "k1"
    assert body["parentInfo"]["email"] == "dana@example.com"
    assert body["comments"] == {"parent": "hi"}


def test_get_kid_with_real_resolver_and_profile_instructor_id():
    profile_table = Mock()
    profile_table.get_profile.return_value = UserProfileModel(
        userId=UserId("U5"), role="instructor", instructorId=InstructorId("I1")
    )
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()

    handler = create_kids_api_handler(
        kids_table=kids_table, identity_resolver=IdentityResolver(user_profile_table=profile_table)
    )
    response = handler.handle(create_kids_event("U5", kid_id="k1"))

    assert response["statusCode"] == 200
    assert json.loads(response["body"])["comments"]["teamLeader"] == "good driver"


def test_put_kid_parent_comment():
    kid = make_kid()
    kids_table = Mock()
    kids_table.get_kid.return_value = kid
    kids_table.update_fields.return_value = kid.model_copy(
        update={"comments": kid.comments.model_copy(update={"parent": "updated"})}
    )

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(PARENT))
    response = handler.handle(
        create_kids_event("P1", method="PUT", kid_id="k1", body={"changes": {"comments.parent": "updated"}})
    )

    assert response["statusCode"] == 200
    assert json.loads(response["body"])["comments"]["parent"] == "updated"
    kids_table.update_fields.assert_called_once_with(KidId("k1"), {"comments.parent": "updated"})


def test_put_kid_non_editable_field():
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(PARENT))
    response = handler.handle(
        create_kids_event("P1", method="PUT", kid_id="k1", body={"changes": {"participantNumber": "1"}})
    )

    assert response["statusCode"] == 403
    assert json.loads(response["body"])["details"] == {"fields": ["participantNumber"]}
    kids_table.update_fields.assert_not_called()


def test_put_kid_foreign_record():
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(OTHER_PARENT))
    response = handler.handle(
        create_kids_event("P2", method="PUT", kid_id="k1", body={"changes": {"comments.parent": "x"}})
    )

    assert response["statusCode"] == 403
    kids_table.update_fields.assert_not_called()


def test_put_kid_missing_body():
    handler = create_kids_api_handler(identity_resolver=resolver_for(ADMIN))
    response = handler.handle(create_kids_event("A1", method="PUT", kid_id="k1"))

    assert response["statusCode"] == 400


def test_put_kid_invalid_body():
    handler = create_kids_api_handler(identity_resolver=resolver_for(ADMIN))
    response = handler.handle(create_kids_event("A1", method="PUT", kid_id="k1", body={"changes": "nope"}))

    assert response["statusCode"] == 400


def test_put_kid_invalid_value():
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(ADMIN))
    response = handler.handle(
        create_kids_event("A1", method="PUT", kid_id="k1", body={"changes": {"signedFormStatus": "approved"}})
    )

    assert response["statusCode"] == 400
    kids_table.update_fields.assert_not_called()


def test_unexpected_error_returns_500():
    kids_table = Mock()
    kids_table.list_kids.side_effect = RuntimeError("boom")

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(ADMIN))
    response = handler.handle(create_kids_event("A1"))

    assert response["statusCode"] == 500


def test_put_kid_stores_validated_values():
    kids_table = Mock()
    kids_table.get_kid.return_value = make_kid()
    kids_table.update_fields.return_value = make_kid(signedDeclaration=True)

    handler = create_kids_api_handler(kids_table=kids_table, identity_resolver=resolver_for(ADMIN))
    response = handler.handle(
        create_kids_event("A1", method="PUT", kid_id="k1", body={"changes": {"signedDeclaration": "yes"}})
    )

    assert response["statusCode"] == 200
    kids_table.update_fields.assert_called_once_with(KidId("k1"), {"signedDeclaration": True})


@pytest.fixture
def moto_kids_table(aws_credentials) -> typing.Iterator[KidsTable]:
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-west-1")
        dynamodb.create_table(
            TableName="KidsTable",
            KeySchema=[{"AttributeName": "kidId", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "kidId", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield KidsTable("KidsTable")


def test_put_kid_on_sparse_item_with_coerced_value(moto_kids_table: KidsTable):
    moto_kids_table.table.put_item(Item={"kidId": "k1", "parentInfo": {"parentIds": ["P1"]}})

    handler = create_kids_api_handler(kids_table=moto_kids_table, identity_resolver=resolver_for(ADMIN))
    response = handler.handle(
        create_kids_event(
            "A1",
            method="PUT",
            kid_id="k1",
            body={"changes": {"secondParentInfo.name": "Avi", "signedDeclaration": "yes"}},
        )
    )

    assert response["statusCode"] == 200
    assert json.loads(response["body"])["secondParentInfo"]["name"] == "Avi"
    raw_item = moto_kids_table.table.get_item(Key={"kidId": "k1"})["Item"]
    assert raw_item["signedDeclaration"] is True
    assert raw_item["secondParentInfo"]["name"] == "Avi"
