from accounthub.models.account_group import AccountToAccountGroup
from accounthub.models.role import RoleKind
from accounthub.models.tenant import Tenant


class TestListAccountTenants:
    """Tests for GET /api/tenants (tenants of the active account)"""

    def test_personal_tenant_only(self, client, alice):
        response = client.get("/api/tenants", headers=alice.headers)

        assert response.status_code == 200
        tenants = response.json()
        assert len(tenants) == 1
        assert tenants[0]["id"] == alice.personal_tenant.id
        assert tenants[0]["kind"] == "personal"
        assert tenants[0]["role"] == RoleKind.OWNER
        assert tenants[0]["is_active"] is True

    def test_multiple_tenants_with_roles(self, client, alice, bob, make_org):
        make_org("Family Budget", bob.account, (alice.account, RoleKind.TENANT_ADMIN))
        make_org("Business", bob.account, (alice.account, RoleKind.BILLING_ADMIN))

        response = client.get("/api/tenants", headers=alice.headers)

        assert response.status_code == 200
        by_name = {t["name"]: t for t in response.json()}
        assert set(by_name) == {"Personal", "Family Budget", "Business"}
        assert by_name["Family Budget"]["role"] == RoleKind.TENANT_ADMIN
        assert by_name["Business"]["allowed"] == ["view_billing", "manage_billing"]
        assert by_name["Business"]["is_active"] is False

    def test_deleted_tenant_not_listed(self, client, alice, make_org, db_session):
        org = make_org("Gone", alice.account)
        org.soft_delete()
        db_session.commit()

        ids = [t["id"] for t in client.get("/api/tenants", headers=alice.headers).json()]
        assert org.id not in ids

    def test_requires_auth(self, client):
        assert client.get("/api/tenants").status_code == 401


class TestGetTenant:
    def test_get_tenant_as_member(self, client, alice, bob, make_org):
        org = make_org("Acme", bob.account, (alice.account, RoleKind.USER))

        response = client.get(f"/api/tenants/{org.id}", headers=alice.headers)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Acme"
        assert data["created_by"] == bob.user.id

    def test_get_tenant_as_non_member(self, client, alice, bob, make_org):
        org = make_org("Acme", bob.account)
        response = client.get(f"/api/tenants/{org.id}", headers=alice.headers)
        assert response.status_code == 403

    def test_get_missing_tenant(self, client, alice):
        assert client.get("/api/tenants/99999", headers=alice.headers).status_code == 404


class TestUpdateTenant:
    def test_owner_can_rename(self, client, alice, make_org):
        org = make_org("Acme", alice.account)

        response = client.patch(
            f"/api/tenants/{org.id}", headers=alice.headers, json={"name": "Acme Corp"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Corp"

    def test_member_cannot_rename(self, client, alice, bob, make_org):
        org = make_org("Acme", bob.account, (alice.account, RoleKind.MEMBER))

        response = client.patch(
            f"/api/tenants/{org.id}", headers=alice.headers, json={"name": "Mine Now"}
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "You are not authorized to update this tenant"

    def test_empty_name_rejected(self, client, alice, make_org):
        org = make_org("Acme", alice.account)
        response = client.patch(f"/api/tenants/{org.id}", headers=alice.headers, json={"name": ""})
        assert response.status_code == 422


class TestDeleteTenant:
    def test_cannot_delete_personal_tenant(self, client, alice):
        response = client.delete(f"/api/tenants/{alice.personal_tenant.id}", headers=alice.headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Personal tenants cannot be deleted"

    def test_delete_active_org(self, client, alice, bob, make_org, db_session):
        org = make_org("Acme", alice.account, (bob.account, RoleKind.MEMBER))
        switched = client.post(
            "/api/session/switch-tenant", headers=alice.headers, json={"tenant_id": org.id}
        ).json()
        headers = {"Authorization": f"Bearer {switched['token']}"}

        response = client.delete(f"/api/tenants/{org.id}", headers=headers)

        assert response.status_code == 200
        session = response.json()["session"]
        assert session["active_tenant_id"] == alice.personal_tenant.id
        assert org.id not in {p["tenant_id"] for p in session["session_accounts"]}

        tenant = db_session.get(Tenant, org.id)
        db_session.refresh(tenant)
        assert tenant.deleted_at is not None
        assert tenant.deleted_by == alice.user.id

        bob_tenants = [t["id"] for t in client.get("/api/tenants", headers=bob.headers).json()]
        assert org.id not in bob_tenants

    def test_delete_removes_groups_and_edges(self, client, alice, bob, make_org, make_group, db_session):
        org = make_org("Acme", alice.account, (bob.account, RoleKind.MEMBER))
        root = make_group(org, "Engineering")
        child = make_group(org, "Backend", parent=root)
        edge = AccountToAccountGroup(account_id=bob.account.id, account_group_id=child.id)
        db_session.add(edge)
        other = make_group(make_org("Other", bob.account), "Untouched")
        db_session.commit()

        response = client.delete(f"/api/tenants/{org.id}", headers=alice.headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert root.deleted_at is not None
        assert child.deleted_at is not None
        assert edge.deleted_at is not None
        assert other.deleted_at is None

    def test_member_cannot_delete(self, client, alice, bob, make_org):
        org = make_org("Acme", bob.account, (alice.account, RoleKind.MEMBER))
        response = client.delete(f"/api/tenants/{org.id}", headers=alice.headers)
        assert response.status_code == 403


class TestMembers:
    def test_list_members(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account, (bob.account, RoleKind.MEMBER))

        response = client.get(f"/api/tenants/{org.id}/members", headers=bob.headers)

        assert response.status_code == 200
        members = {m["email"]: m for m in response.json()}
        assert members["alice@example.com"]["role"]["kind"] == "owner"
        assert members["bob@example.com"]["role"]["kind"] == "member"

    def test_list_members_as_non_member(self, client, alice, bob, make_org):
        org = make_org("Acme", bob.account)
        assert client.get(f"/api/tenants/{org.id}/members", headers=alice.headers).status_code == 403

    def test_add_member_default_role(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account)

        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": "bob@example.com"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["account_id"] == bob.account.id
        assert data["role"]["kind"] == "member"

    def test_add_existing_member(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account, (bob.account, RoleKind.USER))

        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": "bob@example.com"},
        )
        assert response.status_code == 409

    def test_add_unknown_account(self, client, alice, make_org):
        org = make_org("Acme", alice.account)
        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": "ghost@example.com"},
        )
        assert response.status_code == 404

    def test_add_member_without_manage_users(self, client, alice, bob, sign_up, make_org):
        carol = sign_up("carol@example.com")
        org = make_org("Acme", bob.account, (alice.account, RoleKind.MEMBER))

        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": carol.account.email},
        )
        assert response.status_code == 403

    def test_admin_cannot_grant_owner(self, client, alice, bob, sign_up, make_org):
        """A tenant admin lacks manage_billing, so cannot hand out the owner set"""
        carol = sign_up("carol@example.com")
        org = make_org("Acme", bob.account, (alice.account, RoleKind.TENANT_ADMIN))

        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": carol.account.email, "role": "owner"},
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "You cannot grant capabilities you don't have"

    def test_add_member_with_custom_capabilities(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account)

        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": "bob@example.com", "role": "user", "allowed": ["view_billing"]},
        )

        assert response.status_code == 201
        assert response.json()["role"]["allowed"] == ["view_billing"]

    def test_unknown_capability_rejected(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account)

        response = client.post(
            f"/api/tenants/{org.id}/members",
            headers=alice.headers,
            json={"email": "bob@example.com", "allowed": ["launch_rockets"]},
        )
        assert response.status_code == 400


class TestMemberRoles:
    def test_owner_changes_role(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account, (bob.account, RoleKind.USER))

        response = client.patch(
            f"/api/tenants/{org.id}/members/{bob.account.id}/role",
            headers=alice.headers,
            json={"role": "tenant_admin"},
        )

        assert response.status_code == 200
        role = response.json()["role"]
        assert role["kind"] == "tenant_admin"
        assert "manage_users" in role["allowed"]

    def test_cannot_change_own_role(self, client, alice, make_org):
        org = make_org("Acme", alice.account)

        response = client.patch(
            f"/api/tenants/{org.id}/members/{alice.account.id}/role",
            headers=alice.headers,
            json={"role": "user"},
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Cannot change your own role"

    def test_role_change_needs_manage_roles(self, client, alice, bob, sign_up, make_org):
        carol = sign_up("carol@example.com")
        org = make_org(
            "Acme", bob.account, (alice.account, RoleKind.BILLING_ADMIN), (carol.account, RoleKind.USER)
        )

        response = client.patch(
            f"/api/tenants/{org.id}/members/{carol.account.id}/role",
            headers=alice.headers,
            json={"role": "member"},
        )
        assert response.status_code == 403

    def test_change_role_of_non_member(self, client, alice, bob, make_org):
        org = make_org("Acme", alice.account)

        response = client.patch(
            f"/api/tenants/{org.id}/members/{bob.account.id}/role",
            headers=alice.headers,
            json={"role": "member"},
        )
        assert response.status_code == 404


class TestRemoveMember:
    def test_remove_member(self, client, alice, bob, make_org, make_group, db_session):
        org = make_org("Acme", alice.account, (bob.account, RoleKind.MEMBER))
        group = make_group(org, "Team")
        db_session.add(AccountToAccountGroup(account_id=bob.account.id, account_group_id=group.id))
        db_session.commit()

        response = client.delete(
            f"/api/tenants/{org.id}/members/{bob.account.id}", headers=alice.headers
        )

        assert response.status_code == 200
        assert response.json() == {
            "message": "Member removed successfully",
            "removed_account_id": bob.account.id,
        }
        edge = db_session.query(AccountToAccountGroup).filter_by(account_id=bob.account.id).one()
        db_session.refresh(edge)
        assert edge.deleted_at is not None
        assert client.get(f"/api/tenants/{org.id}", headers=bob.headers).status_code == 403

    def test_cannot_remove_self(self, client, alice, make_org):
        org = make_org("Acme", alice.account)

        response = client.delete(
            f"/api/tenants/{org.id}/members/{alice.account.id}", headers=alice.headers
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Cannot remove yourself from tenant"

    def test_member_cannot_remove_others(self, client, alice, bob, make_org):
        org = make_org("Acme", bob.account, (alice.account, RoleKind.MEMBER))

        response = client.delete(
            f"/api/tenants/{org.id}/members/{bob.account.id}", headers=alice.headers
        )
        assert response.status_code == 403
