import pytest
from sqlalchemy.exc import OperationalError

from orgtasks.core.permissions import ROLE_PERMISSIONS
from orgtasks.models.permission import Permission
from orgtasks.models.principal import Principal
from orgtasks.models.role import Role
from orgtasks.services.access_control import (
    AccessDecisionEngine,
    DenialKind,
    Operation,
    ResourceKind,
    ResourceRef,
    ROLE_SCOPES,
    ScopeRule,
    permission_for,
)
from orgtasks.services.organization_directory import (
    OrganizationDirectory,
    OrganizationNode,
    OrganizationSnapshot,
)

ALL_OPERATIONS = list(Operation)
WRITE_OPERATIONS = [Operation.CREATE, Operation.UPDATE, Operation.DELETE]


@pytest.fixture
def directory():
    """root (0) -> eng (1) -> frontend (2); root -> sales (1); other (0) is a separate tree"""
    return OrganizationDirectory(
        OrganizationSnapshot(
            [
                OrganizationNode("root", None, True, 0),
                OrganizationNode("eng", "root", True, 1),
                OrganizationNode("frontend", "eng", True, 2),
                OrganizationNode("sales", "root", True, 1),
                OrganizationNode("other", None, True, 0),
                OrganizationNode("retired", "eng", False, 2),
            ]
        )
    )


@pytest.fixture
def engine(directory):
    return AccessDecisionEngine(directory)


def task(org_id: str, created_by: str = "someone-else") -> ResourceRef:
    return ResourceRef(organization_id=org_id, created_by_id=created_by)


owner = Principal(id="owner", organization_id="frontend", role=Role.OWNER)
admin_eng = Principal(id="admin-eng", organization_id="eng", role=Role.ADMIN)
admin_frontend = Principal(id="admin-frontend", organization_id="frontend", role=Role.ADMIN)
viewer_frontend = Principal(id="viewer-frontend", organization_id="frontend", role=Role.VIEWER)
viewer_eng = Principal(id="viewer-eng", organization_id="eng", role=Role.VIEWER)


class TestPreChecks:
    """Authentication and role validity short-circuit everything else"""

    def test_missing_principal(self, engine):
        decision = engine.authorize(None, task("eng"), Operation.READ)
        assert decision.allowed is False
        assert decision.kind is DenialKind.NOT_AUTHENTICATED
        assert decision.reason == "not authenticated"

    def test_inactive_principal_is_not_authenticated(self, engine):
        inactive = Principal(id="x", organization_id="eng", role=Role.OWNER, is_active=False)
        assert engine.authorize(inactive, task("eng"), Operation.READ).kind is DenialKind.NOT_AUTHENTICATED

    @pytest.mark.parametrize("role", ["superuser", "", None, "OWNER"])
    def test_unknown_role_is_denied_not_raised(self, engine, role):
        principal = Principal(id="x", organization_id="eng", role=role)
        decision = engine.authorize(principal, task("eng"), Operation.READ)
        assert decision.allowed is False
        assert decision.kind is DenialKind.INVALID_ROLE
        assert decision.reason == "invalid role"

    def test_role_given_as_plain_string_is_accepted(self, engine):
        principal = Principal(id="x", organization_id="eng", role="admin")
        assert engine.authorize(principal, task("frontend"), Operation.UPDATE).allowed is True


class TestOwner:
    """OWNER bypasses organization scoping for every operation"""

    @pytest.mark.parametrize("org_id", ["root", "eng", "frontend", "sales", "other", "retired", "ghost"])
    @pytest.mark.parametrize("operation", ALL_OPERATIONS)
    def test_global_access(self, engine, org_id, operation):
        assert engine.authorize(owner, task(org_id), operation).allowed is True

    def test_accessible_organizations_is_unrestricted(self, engine):
        assert engine.accessible_organization_ids(owner) is None


class TestAdmin:
    """ADMIN reaches own organization and descendants, never ancestors or siblings"""

    @pytest.mark.parametrize("operation", ALL_OPERATIONS)
    def test_child_org_task_allowed(self, engine, operation):
        assert engine.authorize(admin_eng, task("frontend"), operation).allowed is True

    @pytest.mark.parametrize("operation", ALL_OPERATIONS)
    def test_own_org_task_allowed(self, engine, operation):
        assert engine.authorize(admin_eng, task("eng"), operation).allowed is True

    @pytest.mark.parametrize("org_id", ["root", "sales", "other"])
    @pytest.mark.parametrize("operation", ALL_OPERATIONS)
    def test_parent_sibling_and_foreign_denied(self, engine, org_id, operation):
        decision = engine.authorize(admin_eng, task(org_id), operation)
        assert decision.allowed is False
        assert decision.kind is DenialKind.SCOPE_DENIED

    def test_child_team_admin_cannot_reach_parent(self, engine):
        decision = engine.authorize(admin_frontend, task("eng"), Operation.READ)
        assert decision.kind is DenialKind.SCOPE_DENIED

    def test_inactive_descendant_out_of_reach(self, engine):
        assert engine.authorize(admin_eng, task("retired"), Operation.READ).allowed is False

    def test_no_ownership_needed_within_scope(self, engine):
        decision = engine.authorize(admin_eng, task("frontend", created_by="viewer-frontend"), Operation.DELETE)
        assert decision.allowed is True

    def test_accessible_organizations_are_descendants(self, engine):
        assert engine.accessible_organization_ids(admin_eng) == {"eng", "frontend"}

    def test_admin_in_inactive_org_reaches_nothing(self, engine):
        stranded = Principal(id="a", organization_id="retired", role=Role.ADMIN)
        assert engine.authorize(stranded, task("retired"), Operation.READ).kind is DenialKind.SCOPE_DENIED
        assert engine.accessible_organization_ids(stranded) == set()


class TestViewer:
    """VIEWER reads own organization only and never writes"""

    def test_own_org_read_allowed(self, engine):
        assert engine.authorize(viewer_frontend, task("frontend"), Operation.READ).allowed is True

    def test_child_org_read_denied(self, engine):
        """No hierarchy for viewers, even downward"""
        decision = engine.authorize(viewer_eng, task("frontend"), Operation.READ)
        assert decision.kind is DenialKind.SCOPE_DENIED

    @pytest.mark.parametrize("operation", WRITE_OPERATIONS)
    def test_writes_denied_at_permission_stage(self, engine, operation):
        """Even for a task outside the viewer's org, permission fails before scope"""
        for org_id in ("frontend", "sales"):
            decision = engine.authorize(viewer_frontend, task(org_id, created_by="viewer-frontend"), operation)
            assert decision.allowed is False
            assert decision.kind is DenialKind.PERMISSION_DENIED

    def test_accessible_organizations_is_own_org(self, engine):
        assert engine.accessible_organization_ids(viewer_frontend) == {"frontend"}


class TestConcreteScenarios:
    def test_admin_eng_updates_frontend_task_but_not_root_task(self, engine):
        t1 = task("frontend")
        t2 = task("root")
        assert engine.authorize(admin_eng, t1, Operation.UPDATE).allowed is True
        denied = engine.authorize(admin_eng, t2, Operation.UPDATE)
        assert denied.allowed is False
        assert denied.kind is DenialKind.SCOPE_DENIED

    def test_viewer_frontend_reads_but_cannot_delete(self, engine):
        t1 = task("frontend", created_by="someone-else")
        assert engine.authorize(viewer_frontend, t1, Operation.READ).allowed is True
        denied = engine.authorize(viewer_frontend, t1, Operation.DELETE)
        assert denied.allowed is False
        assert denied.kind is DenialKind.PERMISSION_DENIED


class TestOrganizationResources:
    def test_org_permissions_mapping(self):
        assert permission_for(Operation.READ, ResourceKind.ORGANIZATION) == Permission.ORG_READ
        assert permission_for(Operation.CREATE, ResourceKind.ORGANIZATION) == Permission.ORG_UPDATE
        assert permission_for(Operation.DELETE, ResourceKind.ORGANIZATION) == Permission.ORG_DELETE
        assert permission_for(Operation.UPDATE) == Permission.TASK_UPDATE

    def test_admin_reads_descendant_org(self, engine):
        assert engine.authorize(admin_eng, ResourceRef.organization("frontend"), Operation.READ).allowed is True

    def test_admin_cannot_update_org(self, engine):
        decision = engine.authorize(admin_eng, ResourceRef.organization("frontend"), Operation.UPDATE)
        assert decision.kind is DenialKind.PERMISSION_DENIED

    def test_owner_updates_any_org(self, engine):
        assert engine.authorize(owner, ResourceRef.organization("other"), Operation.UPDATE).allowed is True


class TestOwnershipFallback:
    """A role with write permission but own-organization scope must own what it modifies"""

    @pytest.fixture
    def member_engine(self, directory):
        permissions = dict(ROLE_PERMISSIONS)
        permissions["member"] = frozenset(
            {Permission.TASK_CREATE, Permission.TASK_READ, Permission.TASK_UPDATE, Permission.TASK_DELETE}
        )
        return AccessDecisionEngine(directory, role_permissions=permissions)

    member = Principal(id="member-1", organization_id="frontend", role="member")

    def test_member_scope_defaults_to_own_org(self, member_engine):
        assert "member" not in ROLE_SCOPES
        assert member_engine.accessible_organization_ids(self.member) == {"frontend"}

    @pytest.mark.parametrize("operation", [Operation.UPDATE, Operation.DELETE])
    def test_member_modifies_own_task(self, member_engine, operation):
        own = task("frontend", created_by="member-1")
        assert member_engine.authorize(self.member, own, operation).allowed is True

    @pytest.mark.parametrize("operation", [Operation.UPDATE, Operation.DELETE])
    def test_member_cannot_modify_others_task(self, member_engine, operation):
        decision = member_engine.authorize(self.member, task("frontend", created_by="someone-else"), operation)
        assert decision.allowed is False
        assert decision.kind is DenialKind.OWNERSHIP_DENIED

    def test_member_reads_others_task(self, member_engine):
        assert member_engine.authorize(self.member, task("frontend"), Operation.READ).allowed is True

    def test_scope_checked_before_ownership(self, member_engine):
        decision = member_engine.authorize(self.member, task("eng", created_by="member-1"), Operation.UPDATE)
        assert decision.kind is DenialKind.SCOPE_DENIED

    def test_member_with_hierarchy_scope_skips_ownership(self, directory):
        permissions = dict(ROLE_PERMISSIONS)
        permissions["lead"] = frozenset({Permission.TASK_READ, Permission.TASK_UPDATE})
        scopes = dict(ROLE_SCOPES)
        scopes["lead"] = ScopeRule.HIERARCHY
        lead_engine = AccessDecisionEngine(directory, role_permissions=permissions, role_scopes=scopes)
        lead = Principal(id="lead-1", organization_id="eng", role="lead")

        assert lead_engine.authorize(lead, task("frontend"), Operation.UPDATE).allowed is True


class TestEndpointRequirements:
    def test_audit_listing_roles(self, engine):
        assert engine.check_endpoint(owner, "audit:list").allowed is True
        assert engine.check_endpoint(admin_eng, "audit:list").allowed is True
        assert engine.check_endpoint(viewer_frontend, "audit:list").kind is DenialKind.PERMISSION_DENIED

    def test_missing_principal(self, engine):
        assert engine.check_endpoint(None, "tasks:read").kind is DenialKind.NOT_AUTHENTICATED

    def test_unknown_action_is_a_programming_error(self, engine):
        with pytest.raises(ValueError):
            engine.check_endpoint(owner, "tasks:explode")


class TestPurity:
    def test_repeated_calls_are_identical(self, engine):
        resource = task("frontend")
        first = engine.authorize(admin_eng, resource, Operation.UPDATE)
        second = engine.authorize(admin_eng, resource, Operation.UPDATE)
        assert first == second

        denied_first = engine.authorize(admin_eng, task("root"), Operation.DELETE)
        denied_second = engine.authorize(admin_eng, task("root"), Operation.DELETE)
        assert denied_first == denied_second

    def test_storage_failure_propagates(self):
        class BrokenStore:
            def find_by_id(self, org_id):
                raise OperationalError("SELECT", {}, Exception("db down"))

            def find_children(self, parent_id):
                raise OperationalError("SELECT", {}, Exception("db down"))

        engine = AccessDecisionEngine(OrganizationDirectory(BrokenStore()))

        with pytest.raises(OperationalError):
            engine.authorize(admin_eng, task("frontend"), Operation.READ)

        # Owner and viewer decisions never consult the store
        assert engine.authorize(owner, task("frontend"), Operation.READ).allowed is True
        assert engine.authorize(viewer_frontend, task("frontend"), Operation.READ).allowed is True
