import pytest

from accounthub.models.account_group import AccountGroup
from accounthub.services.group_hierarchy import GroupHierarchy


@pytest.fixture
def org(alice, make_org):
    return make_org("Acme", alice.account)


@pytest.fixture
def family(org, make_group):
    """Root -> Child1, Root -> Child2 -> Grandchild"""
    root = make_group(org, "Root")
    child1 = make_group(org, "Child1", root)
    child2 = make_group(org, "Child2", root)
    grandchild = make_group(org, "Grandchild", child2)
    return {"root": root, "child1": child1, "child2": child2, "grandchild": grandchild}


@pytest.fixture
def hierarchy(db_session):
    return GroupHierarchy(db_session)


def _flatten(nodes):
    ids = []
    for node in nodes:
        ids.append(node.id)
        ids.extend(_flatten(node.children))
    return ids


def _set_parent(db_session, group, parent_id):
    group.parent_group_id = parent_id
    db_session.commit()


class TestAncestors:
    def test_grandchild_ancestors(self, hierarchy, family):
        ancestors = hierarchy.get_ancestors(family["grandchild"].id)
        assert [g.name for g in ancestors] == ["Child2", "Root"]

    def test_root_has_no_ancestors(self, hierarchy, family):
        assert hierarchy.get_ancestors(family["root"].id) == []

    def test_missing_group(self, hierarchy, family):
        assert hierarchy.get_ancestors(9999) == []

    def test_deleted_group_has_no_ancestors(self, hierarchy, family, db_session):
        family["grandchild"].soft_delete()
        db_session.commit()
        assert hierarchy.get_ancestors(family["grandchild"].id) == []

    def test_deleted_ancestor_stops_walk(self, hierarchy, family, db_session):
        family["child2"].soft_delete()
        db_session.commit()
        # Root sits above the deleted Child2 and must not be reached
        assert hierarchy.get_ancestors(family["grandchild"].id) == []

    def test_terminates_on_cycle(self, hierarchy, org, make_group, db_session):
        a = make_group(org, "A")
        b = make_group(org, "B", a)
        c = make_group(org, "C", b)
        _set_parent(db_session, a, c.id)

        ancestors = hierarchy.get_ancestors(c.id)
        ids = [g.id for g in ancestors]
        assert ids == [b.id, a.id]
        assert len(ids) == len(set(ids))


class TestDescendants:
    def test_root_descendants(self, hierarchy, family):
        descendants = hierarchy.get_descendants(family["root"].id)
        assert {g.name for g in descendants} == {"Child1", "Child2", "Grandchild"}

    def test_leaf_has_no_descendants(self, hierarchy, family):
        assert hierarchy.get_descendants(family["grandchild"].id) == []

    def test_missing_group(self, hierarchy, family):
        assert hierarchy.get_descendants(9999) == []

    def test_deleted_child_cuts_subtree(self, hierarchy, family, db_session):
        family["child2"].soft_delete()
        db_session.commit()
        descendants = hierarchy.get_descendants(family["root"].id)
        assert [g.name for g in descendants] == ["Child1"]

    def test_never_contains_start_and_terminates_on_cycle(
        self, hierarchy, org, make_group, db_session
    ):
        a = make_group(org, "A")
        b = make_group(org, "B", a)
        c = make_group(org, "C", b)
        _set_parent(db_session, a, c.id)

        descendants = hierarchy.get_descendants(a.id)
        ids = {g.id for g in descendants}
        assert ids == {b.id, c.id}
        assert a.id not in ids


class TestWouldCreateCycle:
    def test_root_placement_is_safe(self, hierarchy, family):
        assert hierarchy.would_create_cycle(family["root"].id, None) is False

    def test_self_parent(self, hierarchy, family):
        assert hierarchy.would_create_cycle(family["child1"].id, family["child1"].id) is True

    def test_descendant_as_parent(self, hierarchy, family):
        assert hierarchy.would_create_cycle(family["root"].id, family["grandchild"].id) is True

    def test_unrelated_parent(self, hierarchy, family, org, make_group):
        other = make_group(org, "Other")
        assert hierarchy.would_create_cycle(family["child1"].id, other.id) is False

    def test_sibling_parent(self, hierarchy, family):
        assert hierarchy.would_create_cycle(family["child1"].id, family["child2"].id) is False

    def test_missing_parent_is_a_dead_end(self, hierarchy, family):
        assert hierarchy.would_create_cycle(family["child1"].id, 9999) is False

    def test_existing_cycle_reported(self, hierarchy, org, make_group, db_session):
        a = make_group(org, "A")
        b = make_group(org, "B", a)
        _set_parent(db_session, a, b.id)
        outsider = make_group(org, "Outsider")

        assert hierarchy.would_create_cycle(outsider.id, a.id) is True

    def test_walk_passes_through_deleted_groups(self, hierarchy, family, db_session):
        family["child2"].soft_delete()
        db_session.commit()
        assert hierarchy.would_create_cycle(family["root"].id, family["grandchild"].id) is True


class TestBuildTree:
    def test_tree_shape(self, hierarchy, family, org):
        roots = hierarchy.build_tree(org.id)

        assert [r.name for r in roots] == ["Root"]
        root = roots[0]
        assert [c.name for c in root.children] == ["Child1", "Child2"]
        child2 = root.children[1]
        assert [c.name for c in child2.children] == ["Grandchild"]

    def test_every_live_group_once(self, hierarchy, family, org, make_group):
        make_group(org, "Loner")
        ids = _flatten(hierarchy.build_tree(org.id))
        assert len(ids) == len(set(ids)) == 5

    def test_orphan_of_deleted_parent_becomes_root(self, hierarchy, family, org, db_session):
        family["child2"].soft_delete()
        db_session.commit()

        roots = hierarchy.build_tree(org.id)
        assert {r.name for r in roots} == {"Root", "Grandchild"}
        assert sorted(_flatten(roots)) == sorted(
            g.id for g in (family["root"], family["child1"], family["grandchild"])
        )

    def test_other_tenants_excluded(self, hierarchy, family, bob, make_org, make_group):
        other_org = make_org("Other", bob.account)
        make_group(other_org, "Elsewhere")
        assert "Elsewhere" not in {
            n.name for n in hierarchy.build_tree(family["root"].tenant_id)
        }

    def test_cycle_does_not_drop_groups(self, hierarchy, org, make_group, db_session):
        a = make_group(org, "A")
        b = make_group(org, "B", a)
        c = make_group(org, "C", b)
        d = make_group(org, "D", c)
        _set_parent(db_session, a, c.id)

        roots = hierarchy.build_tree(org.id)
        ids = _flatten(roots)
        assert sorted(ids) == sorted([a.id, b.id, c.id, d.id])
        assert len(roots) == 1

    def test_empty_tenant(self, hierarchy, org):
        assert hierarchy.build_tree(org.id) == []

    def test_node_exposes_group_fields(self, hierarchy, family, org):
        root = hierarchy.build_tree(org.id)[0]
        assert isinstance(root.group, AccountGroup)
        assert root.tenant_id == org.id
        assert root.parent_group_id is None
