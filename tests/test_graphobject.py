"""
Unit tests for the entity model.

These tests work on the objects only, nothing is sent anywhere.
"""

import uuid
from datetime import datetime, timezone

import pytest

from aadgraph.directoryobjects import (
    Application,
    AssignedLicense,
    ExtensionProperty,
    Group,
    PasswordProfile,
    User,
)
from aadgraph.graphobject import (
    BoundedValueSet,
    ChangeTrackingCollection,
    Extension,
    extension_property_name,
    format_datetime,
    parse_datetime,
)
from aadgraph.lib import error

APP_ID = "5b3a8e6c-3d8c-4ef9-a2c7-c05a9b4fe4b1"


class EmployeeUser(User):
    employee_code = Extension(APP_ID)
    cost_center = Extension(APP_ID, "CostCenter")


def new_user(**kwargs):
    defaults = dict(
        display_name="Bob Smith",
        mail_nickname="bob",
        user_principal_name="bob@contoso.com",
        password_profile=PasswordProfile(
            password="Secret123!", force_change_password_next_login=True
        ),
        account_enabled=True,
    )
    defaults.update(kwargs)
    return User(**defaults)


class TestChangeTracking:
    """Test tracking of changed properties."""

    def test_setting_property_records_wire_name(self):
        """Setting a declared property should record its wire name."""
        user = User()
        user.display_name = "Bob"
        assert user.changed_properties == {"displayName"}

    def test_setting_property_repeatedly_records_once(self):
        """Setting a property N times keeps exactly one entry."""
        user = User()
        for name in ("a", "b", "c"):
            user.display_name = name
        assert user.changed_properties == {"displayName"}
        assert user.display_name == "c"

    def test_object_id_not_tracked(self):
        """object_id and odata_type are not part of the changes."""
        user = User(object_id="u1")
        assert user.changed_properties == set()
        assert user.odata_type == "Microsoft.WindowsAzure.ActiveDirectory.User"

    def test_collection_append_marks_changed(self):
        """Modifying a collection in place should mark it as changed."""
        user = User()
        user.other_mails.append("bob@example.com")
        assert "otherMails" in user.changed_properties
        assert user.other_mails == ["bob@example.com"]

    def test_from_wire_is_clean(self):
        """A deserialized object has no changes."""
        user = User.from_wire(
            {
                "objectId": "u1",
                "displayName": "Bob",
                "accountEnabled": True,
                "otherMails": ["a@example.com"],
            }
        )
        assert user.changed_properties == set()
        assert user.to_wire(mutated_only=True) == {}
        assert user.object_id == "u1"
        assert user.account_enabled is True
        assert set(user.materialized_properties) == {
            "objectId",
            "displayName",
            "accountEnabled",
            "otherMails",
        }

    def test_from_wire_keeps_undeclared_properties(self):
        """Unknown fields should end up in undeclared_properties."""
        user = User.from_wire({"objectId": "u1", "customField": "x"})
        assert user.undeclared_properties == {"customField": "x"}
        assert user["customField"] == "x"

    def test_from_wire_converts_values(self):
        """Typed properties are converted from their json form."""
        user = User.from_wire(
            {
                "lastDirSyncTime": "2014-01-02T03:04:05Z",
                "assignedLicenses": [
                    {
                        "skuId": "11111111-1111-1111-1111-111111111111",
                        "disabledPlans": [],
                    }
                ],
            }
        )
        assert user.last_dir_sync_time == datetime(
            2014, 1, 2, 3, 4, 5, tzinfo=timezone.utc
        )
        assert user.assigned_licenses[0].sku_id == uuid.UUID(
            "11111111-1111-1111-1111-111111111111"
        )

    def test_clear_changes(self):
        user = User(display_name="Bob")
        user.clear_changes()
        assert user.changed_properties == set()


class TestWireForm:
    """Test conversion of objects to their json form."""

    def test_mutated_only(self):
        """Only changed properties are included."""
        user = User.from_wire({"objectId": "u1", "displayName": "Bob", "city": "Oslo"})
        user.city = "Bergen"
        assert user.to_wire(mutated_only=True) == {"city": "Bergen"}

    def test_none_value_is_sent_as_null(self):
        """Clearing a property sends null."""
        user = User.from_wire({"objectId": "u1", "city": "Oslo"})
        user.city = None
        assert user.to_wire() == {"city": None}

    def test_full(self):
        """The full form includes all properties with a value."""
        user = User.from_wire({"objectId": "u1", "displayName": "Bob"})
        wire = user.to_wire(mutated_only=False)
        assert wire["objectId"] == "u1"
        assert wire["displayName"] == "Bob"
        assert "city" not in wire

    def test_complex_values(self):
        """Complex values and uuids are rendered as json values."""
        user = User()
        user.password_profile = PasswordProfile(password="pw")
        user.assigned_licenses = [
            AssignedLicense(sku_id=uuid.UUID("11111111-1111-1111-1111-111111111111"))
        ]
        wire = user.to_wire()
        assert wire["passwordProfile"] == {"password": "pw"}
        assert wire["assignedLicenses"] == [
            {"skuId": "11111111-1111-1111-1111-111111111111"}
        ]

    def test_changed_link_refuses_serialization(self):
        """A link with content can't be serialized."""
        group = Group(object_id="g1")
        group.members.append(User(object_id="u1"))
        with pytest.raises(error.PropertyValidationError):
            group.to_wire()

    def test_undeclared_changes_included(self):
        """set_undeclared values are sent."""
        user = User.from_wire({"objectId": "u1"})
        user.set_undeclared("newField", 5)
        assert user.to_wire() == {"newField": 5}


class TestValidation:
    """Test validate_for_submit."""

    def test_create_with_object_id_fails(self):
        user = new_user(object_id="u1")
        with pytest.raises(error.PropertyValidationError):
            user.validate_for_submit(is_create=True)

    def test_update_without_object_id_fails(self):
        user = User(display_name="Bob")
        with pytest.raises(error.PropertyValidationError):
            user.validate_for_submit(is_create=False)

    def test_valid_user_create(self):
        new_user().validate_for_submit(is_create=True)

    def test_user_create_requires_account_enabled(self):
        """accountEnabled has to be explicitly set."""
        user = new_user()
        user.changed_properties.discard("accountEnabled")
        with pytest.raises(error.PropertyValidationError):
            user.validate_for_submit(is_create=True)

    def test_user_create_requires_display_name(self):
        user = new_user(display_name=None)
        with pytest.raises(error.PropertyValidationError):
            user.validate_for_submit(is_create=True)

    def test_user_create_refuses_licenses(self):
        user = new_user(assigned_licenses=[AssignedLicense(sku_id=uuid.uuid4())])
        with pytest.raises(error.PropertyValidationError):
            user.validate_for_submit(is_create=True)

    def test_changed_link_fails_update(self):
        """Links can't be changed through update."""
        group = Group.from_wire({"objectId": "g1"})
        group.members.append(User(object_id="u1"))
        with pytest.raises(error.PropertyValidationError) as excinfo:
            group.validate_for_submit(is_create=False)
        assert "members" in str(excinfo.value)

    def test_changed_link_fails_create(self):
        user = new_user()
        user.manager = User(object_id="u2")
        with pytest.raises(error.PropertyValidationError):
            user.validate_for_submit(is_create=True)

    def test_extension_is_not_a_link(self):
        """Extension properties pass the link check."""
        user = EmployeeUser.from_wire({"objectId": "u1"})
        user.employee_code = "E42"
        user.set_extension(APP_ID, "other", "x")
        user.validate_for_submit(is_create=False)

    def test_mail_enabled_group_create_fails(self):
        group = Group(display_name="g", mail_nickname="g", mail_enabled=True)
        with pytest.raises(error.PropertyValidationError):
            group.validate_for_submit(is_create=True)

    def test_security_group_create(self):
        group = Group(
            display_name="g",
            mail_nickname="g",
            mail_enabled=False,
            security_enabled=True,
        )
        group.validate_for_submit(is_create=True)

    def test_extension_property_data_type(self):
        prop = ExtensionProperty("skypeId", "Integer", ["User"])
        with pytest.raises(error.PropertyValidationError):
            prop.validate_for_submit(is_create=True)


class TestBoundedValueSet:
    """Test the bounded value set used for extension property targets."""

    def test_rejects_value_outside_domain(self):
        values = BoundedValueSet({"User", "Group"})
        with pytest.raises(error.PropertyValidationError):
            values.add("Foo")
        assert "Foo" not in values

    def test_notifies_on_change(self):
        changes = []
        values = BoundedValueSet(
            {"User", "Group"}, on_change=lambda: changes.append(1)
        )
        values.add("User")
        values.add("User")
        values.discard("Group")
        values.remove("User")
        assert len(changes) == 2
        assert len(values) == 0

    def test_marks_owner_changed(self):
        """Adding a target object marks targetObjects as changed."""
        prop = ExtensionProperty.from_wire({"objectId": "e1", "targetObjects": ["User"]})
        assert prop.changed_properties == set()
        prop.target_objects.add("Group")
        assert prop.changed_properties == {"targetObjects"}
        assert list(prop.target_objects) == ["User", "Group"]

    def test_extension_property_constructor(self):
        prop = ExtensionProperty("skypeId", "String", ["User", "Group"])
        assert prop.to_wire() == {
            "name": "skypeId",
            "dataType": "String",
            "targetObjects": ["User", "Group"],
        }
        with pytest.raises(error.PropertyValidationError):
            prop.target_objects.add("Contact")


class TestChangeTrackingCollection:
    def test_list_behaviour(self):
        changes = []
        values = ChangeTrackingCollection(["a"], on_change=lambda: changes.append(1))
        values.append("b")
        values[0] = "c"
        del values[1]
        values.extend(["d", "e"])
        assert values == ["c", "d", "e"]
        assert len(changes) == 5


class TestPropertyAccess:
    """Test the indexer and the extension accessors."""

    def test_indexer_declared_case_insensitive(self):
        user = User(display_name="Bob")
        assert user["displayname"] == "Bob"
        assert user["DisplayName"] == "Bob"
        assert user["display_name"] == "Bob"

    def test_indexer_unknown_is_none(self):
        assert User()["noSuchThing"] is None

    def test_indexer_prefers_undeclared(self):
        user = User.from_wire({"displayName": "declared"})
        user.undeclared_properties["displayName"] = "undeclared"
        assert user["displayName"] == "undeclared"

    def test_indexer_set(self):
        user = User()
        user["city"] = "Oslo"
        user["custom"] = 1
        assert user.city == "Oslo"
        assert user.get_undeclared("custom") == 1
        assert user.changed_properties == {"city", "custom"}

    def test_extension_property_name(self):
        assert (
            extension_property_name(APP_ID, "skypeId")
            == "extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_skypeId"
        )

    def test_typed_extension(self):
        """Extension attributes map to the full extension name."""
        user = EmployeeUser()
        user.employee_code = "E42"
        user.cost_center = "CC1"
        assert user.to_wire() == {
            "extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_employeeCode": "E42",
            "extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_CostCenter": "CC1",
        }

    def test_extension_accessors(self):
        user = User.from_wire(
            {"extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_skypeId": "bob.skype"}
        )
        assert user.get_extension(APP_ID, "skypeId") == "bob.skype"
        user.set_extension(APP_ID, "skypeId", "bob2")
        assert user.to_wire() == {
            "extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_skypeId": "bob2"
        }

    def test_unknown_constructor_argument(self):
        with pytest.raises(TypeError):
            User(no_such_property=1)


class TestDatetime:
    def test_parse_seven_fraction_digits(self):
        assert parse_datetime("2014-01-02T03:04:05.1234567Z") == datetime(
            2014, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc
        )

    def test_parse_offset(self):
        value = parse_datetime("2014-01-02T05:04:05+02:00")
        assert value.astimezone(timezone.utc).hour == 3

    def test_format(self):
        value = datetime(2014, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert format_datetime(value) == "2014-01-02T03:04:05Z"

    def test_application_roundtrip(self):
        app = Application.from_wire({"objectId": "a1", "identifierUris": ["https://x"]})
        assert app.identifier_uris == ["https://x"]
