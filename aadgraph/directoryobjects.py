#!/usr/bin/env python
"""
The entity types of the directory, and the complex values they carry.

Only the properties are declared here.  Operations on the objects are
done through a GraphConnection.
"""
import uuid
from datetime import datetime

from aadgraph.graphobject import GraphComplexType
from aadgraph.graphobject import GraphObject
from aadgraph.graphobject import Link
from aadgraph.graphobject import Property
from aadgraph.lib import error
from aadgraph.registry import entity

__all__ = [
    "PasswordProfile",
    "AssignedLicense",
    "AssignedPlan",
    "ProvisionedPlan",
    "KeyCredential",
    "PasswordCredential",
    "DirectoryObject",
    "User",
    "Group",
    "Contact",
    "Device",
    "Application",
    "ServicePrincipal",
    "DirectoryRole",
    "DirectoryRoleTemplate",
    "TenantDetail",
    "ExtensionProperty",
    "SubscribedSku",
    "OAuth2PermissionGrant",
]

NAMESPACE = "Microsoft.WindowsAzure.ActiveDirectory"

EXTENSION_DATA_TYPES = frozenset(["String", "Binary"])
EXTENSION_TARGET_OBJECTS = frozenset(
    ["User", "Group", "TenantDetail", "Device", "Application", "ServicePrincipal"]
)

## complex types


class PasswordProfile(GraphComplexType):
    password = Property("password")
    force_change_password_next_login = Property("forceChangePasswordNextLogin", bool)


class AssignedLicense(GraphComplexType):
    disabled_plans = Property("disabledPlans", uuid.UUID, collection=True)
    sku_id = Property("skuId", uuid.UUID)


class AssignedPlan(GraphComplexType):
    assigned_timestamp = Property("assignedTimestamp", datetime)
    capability_status = Property("capabilityStatus")
    service = Property("service")
    service_plan_id = Property("servicePlanId", uuid.UUID)


class ProvisionedPlan(GraphComplexType):
    capability_status = Property("capabilityStatus")
    provisioning_status = Property("provisioningStatus")
    service = Property("service")


class KeyCredential(GraphComplexType):
    custom_key_identifier = Property("customKeyIdentifier", bytes)
    end_date = Property("endDate", datetime)
    key_id = Property("keyId", uuid.UUID)
    start_date = Property("startDate", datetime)
    type = Property("type")
    usage = Property("usage")
    value = Property("value", bytes)


class PasswordCredential(GraphComplexType):
    custom_key_identifier = Property("customKeyIdentifier", bytes)
    end_date = Property("endDate", datetime)
    key_id = Property("keyId", uuid.UUID)
    start_date = Property("startDate", datetime)
    value = Property("value")


## entities


@entity("directoryObjects", NAMESPACE + ".DirectoryObject")
class DirectoryObject(GraphObject):
    object_type = Property("objectType", tracked=False)
    deletion_timestamp = Property("deletionTimestamp", datetime)

    created_on_behalf_of = Link("createdOnBehalfOf", single_valued=True)
    manager = Link("manager", single_valued=True)
    created_objects = Link("createdObjects")
    direct_reports = Link("directReports")
    members = Link("members")
    member_of = Link("memberOf")
    owners = Link("owners")
    owned_objects = Link("ownedObjects")


@entity("users", NAMESPACE + ".User")
class User(DirectoryObject):
    account_enabled = Property("accountEnabled", bool)
    assigned_licenses = Property("assignedLicenses", AssignedLicense, collection=True)
    assigned_plans = Property("assignedPlans", AssignedPlan, collection=True)
    city = Property("city")
    country = Property("country")
    department = Property("department")
    dir_sync_enabled = Property("dirSyncEnabled", bool)
    display_name = Property("displayName")
    facsimile_telephone_number = Property("facsimileTelephoneNumber")
    given_name = Property("givenName")
    immutable_id = Property("immutableId")
    job_title = Property("jobTitle")
    last_dir_sync_time = Property("lastDirSyncTime", datetime)
    mail = Property("mail")
    mail_nickname = Property("mailNickname")
    mobile = Property("mobile")
    on_premises_security_identifier = Property("onPremisesSecurityIdentifier")
    other_mails = Property("otherMails", collection=True)
    password_policies = Property("passwordPolicies")
    password_profile = Property("passwordProfile", PasswordProfile)
    physical_delivery_office_name = Property("physicalDeliveryOfficeName")
    postal_code = Property("postalCode")
    preferred_language = Property("preferredLanguage")
    provisioned_plans = Property("provisionedPlans", ProvisionedPlan, collection=True)
    proxy_addresses = Property("proxyAddresses", collection=True)
    state = Property("state")
    street_address = Property("streetAddress")
    surname = Property("surname")
    telephone_number = Property("telephoneNumber")
    usage_location = Property("usageLocation")
    user_principal_name = Property("userPrincipalName")
    user_type = Property("userType")

    def validate_properties(self, is_create: bool) -> None:
        if not is_create:
            return
        self._require(
            "mail_nickname", "display_name", "user_principal_name", "password_profile"
        )
        if "accountEnabled" not in self.changed_properties:
            raise error.PropertyValidationError(
                "accountEnabled has to be set explicitly when creating a user."
            )
        if "assignedLicenses" in self.changed_properties:
            raise error.PropertyValidationError(
                "assignedLicenses can't be set when creating a user, use assign_license."
            )


@entity("groups", NAMESPACE + ".Group")
class Group(DirectoryObject):
    description = Property("description")
    dir_sync_enabled = Property("dirSyncEnabled", bool)
    display_name = Property("displayName")
    last_dir_sync_time = Property("lastDirSyncTime", datetime)
    mail = Property("mail")
    mail_enabled = Property("mailEnabled", bool)
    mail_nickname = Property("mailNickname")
    on_premises_security_identifier = Property("onPremisesSecurityIdentifier")
    proxy_addresses = Property("proxyAddresses", collection=True)
    security_enabled = Property("securityEnabled", bool)

    def validate_properties(self, is_create: bool) -> None:
        if is_create and self.mail_enabled:
            raise error.PropertyValidationError(
                "Mail enabled groups can't be created through the graph api."
            )


@entity("contacts", NAMESPACE + ".Contact")
class Contact(DirectoryObject):
    city = Property("city")
    country = Property("country")
    department = Property("department")
    dir_sync_enabled = Property("dirSyncEnabled", bool)
    display_name = Property("displayName")
    given_name = Property("givenName")
    job_title = Property("jobTitle")
    mail = Property("mail")
    mail_nickname = Property("mailNickname")
    mobile = Property("mobile")
    proxy_addresses = Property("proxyAddresses", collection=True)
    surname = Property("surname")
    telephone_number = Property("telephoneNumber")


@entity("devices", NAMESPACE + ".Device")
class Device(DirectoryObject):
    account_enabled = Property("accountEnabled", bool)
    approximate_last_logon_timestamp = Property(
        "approximateLastLogonTimestamp", datetime
    )
    device_id = Property("deviceId", uuid.UUID)
    device_os_type = Property("deviceOSType")
    device_os_version = Property("deviceOSVersion")
    device_trust_type = Property("deviceTrustType")
    dir_sync_enabled = Property("dirSyncEnabled", bool)
    display_name = Property("displayName")


@entity("applications", NAMESPACE + ".Application")
class Application(DirectoryObject):
    app_id = Property("appId")
    available_to_other_tenants = Property("availableToOtherTenants", bool)
    display_name = Property("displayName")
    error_url = Property("errorUrl")
    group_membership_claims = Property("groupMembershipClaims")
    homepage = Property("homepage")
    identifier_uris = Property("identifierUris", collection=True)
    key_credentials = Property("keyCredentials", KeyCredential, collection=True)
    known_client_applications = Property(
        "knownClientApplications", uuid.UUID, collection=True
    )
    logout_url = Property("logoutUrl")
    oauth2_allow_implicit_flow = Property("oauth2AllowImplicitFlow", bool)
    password_credentials = Property(
        "passwordCredentials", PasswordCredential, collection=True
    )
    public_client = Property("publicClient", bool)
    reply_urls = Property("replyUrls", collection=True)
    saml_metadata_url = Property("samlMetadataUrl")


@entity("servicePrincipals", NAMESPACE + ".ServicePrincipal")
class ServicePrincipal(DirectoryObject):
    account_enabled = Property("accountEnabled", bool)
    app_display_name = Property("appDisplayName")
    app_id = Property("appId")
    app_owner_tenant_id = Property("appOwnerTenantId", uuid.UUID)
    app_role_assignment_required = Property("appRoleAssignmentRequired", bool)
    display_name = Property("displayName")
    homepage = Property("homepage")
    key_credentials = Property("keyCredentials", KeyCredential, collection=True)
    password_credentials = Property(
        "passwordCredentials", PasswordCredential, collection=True
    )
    publisher_name = Property("publisherName")
    reply_urls = Property("replyUrls", collection=True)
    service_principal_names = Property("servicePrincipalNames", collection=True)
    tags = Property("tags", collection=True)


@entity("directoryRoles", NAMESPACE + ".DirectoryRole")
class DirectoryRole(DirectoryObject):
    description = Property("description")
    display_name = Property("displayName")
    role_template_id = Property("roleTemplateId")


@entity("directoryRoleTemplates", NAMESPACE + ".DirectoryRoleTemplate")
class DirectoryRoleTemplate(DirectoryObject):
    description = Property("description")
    display_name = Property("displayName")


@entity("tenantDetails", NAMESPACE + ".TenantDetail")
class TenantDetail(DirectoryObject):
    assigned_plans = Property("assignedPlans", AssignedPlan, collection=True)
    city = Property("city")
    country = Property("country")
    country_letter_code = Property("countryLetterCode")
    display_name = Property("displayName")
    marketing_notification_emails = Property(
        "marketingNotificationEmails", collection=True
    )
    postal_code = Property("postalCode")
    preferred_language = Property("preferredLanguage")
    provisioned_plans = Property("provisionedPlans", ProvisionedPlan, collection=True)
    state = Property("state")
    street = Property("street")
    technical_notification_mails = Property(
        "technicalNotificationMails", collection=True
    )
    telephone_number = Property("telephoneNumber")


@entity("extensionProperties", NAMESPACE + ".ExtensionProperty")
class ExtensionProperty(GraphObject):
    """
    Definition of an extension property.  These live below the
    application that owns them, see GraphConnection.add_containment.
    """

    app_display_name = Property("appDisplayName")
    name = Property("name")
    data_type = Property("dataType")
    is_synced_from_on_premises = Property("isSyncedFromOnPremises", bool)
    target_objects = Property(
        "targetObjects", collection=True, domain=EXTENSION_TARGET_OBJECTS
    )

    def __init__(self, name=None, data_type="String", target_objects=(), **kwargs):
        super().__init__(**kwargs)
        if name is not None:
            self.name = name
        if data_type is not None:
            self.data_type = data_type
        for target in target_objects:
            self.target_objects.add(target)

    def validate_properties(self, is_create: bool) -> None:
        self._require("name")
        if self.data_type not in EXTENSION_DATA_TYPES:
            raise error.PropertyValidationError(
                "dataType must be one of %s" % sorted(EXTENSION_DATA_TYPES)
            )


@entity("subscribedSkus", NAMESPACE + ".SubscribedSku")
class SubscribedSku(GraphObject):
    applies_to = Property("appliesTo")
    capability_status = Property("capabilityStatus")
    consumed_units = Property("consumedUnits", int)
    sku_id = Property("skuId", uuid.UUID)
    sku_part_number = Property("skuPartNumber")


@entity("oauth2PermissionGrants", NAMESPACE + ".OAuth2PermissionGrant")
class OAuth2PermissionGrant(GraphObject):
    client_id = Property("clientId")
    consent_type = Property("consentType")
    expiry_time = Property("expiryTime", datetime)
    principal_id = Property("principalId")
    resource_id = Property("resourceId")
    scope = Property("scope")
    start_time = Property("startTime", datetime)
