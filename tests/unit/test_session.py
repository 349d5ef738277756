from pydantic import ValidationError
import pytest

from coderunner.session import ProjectSession, SessionKey, SessionStatus


class TestProjectSession:
    def test_idle_defaults(self):
        session = ProjectSession.idle()

        assert session.status is SessionStatus.IDLE
        assert session.id is None
        assert session.generated_code == ""
        assert session.key is None

    def test_lifecycle_to_deployed(self):
        session = (
            ProjectSession.generating("a todo app", epoch=3)
            .generated("p1", "code")
            .deploying()
            .deployed("https://sandbox.example/p1", "sb-1")
        )

        assert session.status is SessionStatus.DEPLOYED
        assert session.prompt == "a todo app"
        assert session.generated_code == "code"
        assert session.key == SessionKey(id="p1", epoch=3)

    def test_failed_keeps_code(self):
        session = ProjectSession.generating("x", epoch=1).generated("p1", "code").deploying()

        failed = session.failed("build error")

        assert failed.error_message == "build error"
        assert failed.generated_code == "code"
        assert failed.public_url is None

    def test_snapshots_are_immutable(self):
        session = ProjectSession.idle()
        with pytest.raises(ValidationError):
            session.status = SessionStatus.DEPLOYED

    @pytest.mark.parametrize(
        "fields",
        [
            {"status": SessionStatus.DEPLOYED, "id": "p1", "generated_code": "c"},
            {"status": SessionStatus.DEPLOYING, "id": "p1", "generated_code": "c", "public_url": "u"},  # noqa: E501
            {"status": SessionStatus.GENERATED, "id": "p1", "generated_code": "c", "sandbox_id": "s"},  # noqa: E501
            {"status": SessionStatus.FAILED, "id": "p1", "generated_code": "c"},
            {"status": SessionStatus.GENERATED, "id": "p1", "generated_code": "c", "error_message": "e"},  # noqa: E501
            {"status": SessionStatus.GENERATED, "id": "p1"},
            {"status": SessionStatus.IDLE, "generated_code": "c"},
            {"status": SessionStatus.GENERATED, "generated_code": "c"},
            {"status": SessionStatus.IDLE, "id": "p1"},
        ],
    )
    def test_invalid_combinations_rejected(self, fields):
        with pytest.raises(ValidationError):
            ProjectSession(**fields)

    def test_keys_differ_by_epoch(self):
        first = ProjectSession.generating("x", epoch=1).generated("p1", "code")
        second = ProjectSession.generating("x", epoch=2).generated("p1", "code")

        assert first.key != second.key
