from app.backend.access import AllowAllAccess, TierAccessPolicy


def test_allow_all_access():
    assert AllowAllAccess().can_access_phase(None, 13) is True


def test_tier_phase_counts():
    tiers = {"f": "free", "b": "basic", "p": "PRO"}
    policy = TierAccessPolicy(tiers.get)

    assert policy.can_access_phase("f", 2) is True
    assert policy.can_access_phase("f", 3) is False
    assert policy.can_access_phase("b", 7) is True
    assert policy.can_access_phase("b", 8) is False
    assert policy.can_access_phase("p", 13) is True


def test_unknown_or_failing_lookup_is_free_tier():
    def broken_lookup(user_id):
        raise ConnectionError("profile service down")

    assert TierAccessPolicy(broken_lookup).tier_for("u1") == "free"
    assert TierAccessPolicy(lambda user_id: "enterprise").tier_for("u1") == "free"
    assert TierAccessPolicy(lambda user_id: "pro").tier_for(None) == "free"
    assert TierAccessPolicy(lambda user_id: "pro").features_for("u1").export_format == "advanced"
