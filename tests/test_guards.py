import pytest

from subathon.core.events import Actor
from subathon.core.guards import is_authorized

from .conftest import BROADCASTER, MODERATOR, VIEWER


class TestIsAuthorized:
    @pytest.mark.parametrize("actor", [VIEWER, MODERATOR, BROADCASTER])
    def test_everyone(self, actor):
        assert is_authorized(actor, "everyone")

    def test_broadcaster_only(self):
        assert is_authorized(BROADCASTER, "broadcaster")
        assert not is_authorized(MODERATOR, "broadcaster")
        assert not is_authorized(VIEWER, "broadcaster")

    @pytest.mark.parametrize("policy", ["mods", "moderatorsAndAbove", "", "anything"])
    def test_other_policies_mean_moderators_and_above(self, policy):
        assert is_authorized(BROADCASTER, policy)
        assert is_authorized(MODERATOR, policy)
        assert not is_authorized(VIEWER, policy)

    def test_broadcaster_who_is_also_flagged_moderator(self):
        actor = Actor(display_name="x", is_broadcaster=True, is_moderator=True)
        assert is_authorized(actor, "broadcaster")
