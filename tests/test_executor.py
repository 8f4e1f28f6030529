"""Tests for the agent executor and prompt assembly."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import FakeLLM
from workflow_dashboard.agents import executor as executor_module
from workflow_dashboard.agents.executor import (
    AgentExecutor,
    build_project_context,
    build_user_content,
)
from workflow_dashboard.core.exceptions import (
    AgentNotFoundError,
    ConfigurationError,
    ProjectNotFoundError,
)
from workflow_dashboard.storage.models import (
    AgentExecution,
    Artifact,
    ArtifactStatus,
    Message,
    Project,
)


async def count_rows(database, model):
    async with database.session() as session:
        return await session.scalar(select(func.count()).select_from(model))


async def only_execution(database):
    async with database.session() as session:
        return (await session.scalars(select(AgentExecution))).one()


class TestBuildProjectContext:
    def test_full_context_layout(self):
        project = Project(
            name="Ledger",
            description="Invoicing",
            constraints=json.dumps({"timeline": "Q1", "budget": "10k"}),
        )
        artifacts = [Artifact(type="PRD", version="v1", content="prd body")]

        context = build_project_context(project, artifacts)

        assert context == (
            "Project: Ledger\n"
            "Description: Invoicing\n"
            "\nConstraints:\n"
            "- Timeline: Q1\n"
            "- Budget: 10k\n"
            "- Tech Stack: Not specified\n"
            "\n--- Previous Artifacts ---\n\n"
            "## PRD (v1)\n\n"
            "prd body\n\n"
            "---\n\n"
        )

    def test_name_only(self):
        assert build_project_context(Project(name="Bare"), []) == "Project: Bare\n"

    def test_malformed_constraints_are_skipped(self):
        project = Project(name="Ledger", constraints="{not json")

        context = build_project_context(project, [])

        assert "Constraints" not in context
        assert context == "Project: Ledger\n"

    @pytest.mark.parametrize("raw", ['["a", "b"]', "5", '"x"', "true"])
    def test_non_object_constraints_render_unspecified_block(self, raw):
        context = build_project_context(Project(name="Ledger", constraints=raw), [])

        assert context == (
            "Project: Ledger\n"
            "\nConstraints:\n"
            "- Timeline: Not specified\n"
            "- Budget: Not specified\n"
            "- Tech Stack: Not specified\n"
        )

    def test_null_constraints_are_skipped(self):
        assert build_project_context(Project(name="Ledger", constraints="null"), []) == "Project: Ledger\n"

    def test_tech_stack_list_is_joined(self):
        project = Project(
            name="Ledger",
            constraints=json.dumps({"techStack": ["FastAPI", "Postgres"]}),
        )

        context = build_project_context(project, [])

        assert "- Timeline: Not specified\n" in context
        assert "- Budget: Not specified\n" in context
        assert "- Tech Stack: FastAPI,Postgres\n" in context

    def test_scalar_constraint_values(self):
        project = Project(
            name="Ledger",
            constraints=json.dumps({"timeline": 6.0, "budget": 0, "techStack": []}),
        )

        context = build_project_context(project, [])

        assert "- Timeline: 6\n" in context
        assert "- Budget: Not specified\n" in context
        assert "- Tech Stack: \n" in context

    def test_artifacts_rendered_in_given_order(self):
        artifacts = [
            Artifact(type="Brief", version="v1", content="first"),
            Artifact(type="PRD", version="v2", content="second"),
        ]

        context = build_project_context(Project(name="Ledger"), artifacts)

        assert context.index("## Brief (v1)") < context.index("## PRD (v2)")

    def test_user_content(self):
        assert build_user_content("Project: X\n", "Draft it") == "Project: X\n\n\nUser Request:\nDraft it"


class TestExecuteAgent:
    def test_success_records_execution_and_messages(self, run_with_db, catalog, make_project):
        llm = FakeLLM(content="# PRD\nDone", input_tokens=1000, output_tokens=1000)

        async def scenario(database):
            project_id = await make_project(database)
            executor = AgentExecutor(database, catalog, llm)

            result = await executor.execute_agent(project_id, 2, "Write the PRD", {"tab": "prd"})

            execution = await only_execution(database)
            async with database.session() as session:
                messages = (await session.scalars(select(Message))).all()
            return project_id, result, execution, messages

        project_id, result, execution, messages = run_with_db(scenario)

        assert result.output == "# PRD\nDone"
        assert result.tokens_used == 2000
        assert result.cost == pytest.approx(0.018)
        assert result.execution_id == execution.id

        assert execution.status == "COMPLETED"
        assert execution.project_id == project_id
        assert execution.agent_id == 2
        assert json.loads(execution.input) == {"userMessage": "Write the PRD", "context": {"tab": "prd"}}
        assert json.loads(execution.output) == {"text": "# PRD\nDone"}
        assert execution.tokens_used == 2000
        assert execution.cost == pytest.approx(0.018)
        assert execution.duration is not None and execution.duration >= 0
        assert execution.completed_at is not None
        assert execution.error is None

        by_role = {m.role: m for m in messages}
        assert set(by_role) == {"USER", "AGENT"}
        assert by_role["USER"].content == "Write the PRD"
        assert by_role["USER"].agent_id is None
        assert by_role["AGENT"].content == "# PRD\nDone"
        assert by_role["AGENT"].agent_id == 2
        assert all(m.execution_id == execution.id for m in messages)

    def test_request_uses_agent_prompt_and_locked_artifacts(self, run_with_db, catalog, make_project):
        llm = FakeLLM()
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)

        async def scenario(database):
            project_id = await make_project(
                database,
                constraints=json.dumps({"timeline": "6 weeks", "budget": "$5k"}),
            )
            async with database.session() as session:
                session.add_all(
                    [
                        Artifact(
                            project_id=project_id,
                            type="Architecture",
                            content="arch body",
                            status=ArtifactStatus.LOCKED.value,
                            created_at=base + timedelta(minutes=2),
                        ),
                        Artifact(
                            project_id=project_id,
                            type="PRD",
                            version="v3",
                            content="prd body",
                            status=ArtifactStatus.LOCKED.value,
                            created_at=base + timedelta(minutes=1),
                        ),
                        Artifact(
                            project_id=project_id,
                            type="Draft",
                            content="draft body",
                            status=ArtifactStatus.DRAFT.value,
                            created_at=base,
                        ),
                    ]
                )
            await AgentExecutor(database, catalog, llm, max_tokens=1234).execute_agent(
                project_id, 5, "Plan the sprint"
            )

        run_with_db(scenario)

        [request] = llm.requests
        assert request.system_prompt == "You are specialist 5.\nAnswer with a markdown document."
        assert request.max_tokens == 1234
        assert request.prompt.startswith("Project: Ledger\nDescription: Invoicing for freelancers\n")
        assert "- Timeline: 6 weeks\n- Budget: $5k\n- Tech Stack: Not specified\n" in request.prompt
        assert request.prompt.index("## PRD (v3)") < request.prompt.index("## Architecture (v1)")
        assert "draft body" not in request.prompt
        assert request.prompt.endswith("\n\nUser Request:\nPlan the sprint")

    def test_unknown_agent_creates_no_record(self, run_with_db, catalog, fake_llm, make_project):
        async def scenario(database):
            project_id = await make_project(database)
            with pytest.raises(AgentNotFoundError, match="Agent 42 not found"):
                await AgentExecutor(database, catalog, fake_llm).execute_agent(project_id, 42, "hi")
            return await count_rows(database, AgentExecution)

        assert run_with_db(scenario) == 0
        assert fake_llm.requests == []

    def test_agent_with_missing_file_is_not_found(self, run_with_db, agents_dir, catalog, fake_llm, make_project):
        (agents_dir / catalog.path_for(7).name).unlink()

        async def scenario(database):
            project_id = await make_project(database)
            with pytest.raises(AgentNotFoundError):
                await AgentExecutor(database, catalog, fake_llm).execute_agent(project_id, 7, "hi")
            return await count_rows(database, AgentExecution)

        assert run_with_db(scenario) == 0

    def test_missing_llm_client_is_configuration_error(self, run_with_db, catalog, make_project):
        async def scenario(database):
            project_id = await make_project(database)
            with pytest.raises(ConfigurationError):
                await AgentExecutor(database, catalog, None).execute_agent(project_id, 1, "hi")
            return await count_rows(database, AgentExecution)

        assert run_with_db(scenario) == 0

    def test_unknown_project_records_failed_execution(self, run_with_db, catalog, fake_llm):
        async def scenario(database):
            with pytest.raises(ProjectNotFoundError, match="Project not found"):
                await AgentExecutor(database, catalog, fake_llm).execute_agent("missing", 1, "hi")
            return await only_execution(database), await count_rows(database, Message)

        execution, message_count = run_with_db(scenario)

        assert execution.status == "FAILED"
        assert execution.project_id == "missing"
        assert execution.error == "Project not found"
        assert execution.completed_at is not None
        assert execution.output is None
        assert message_count == 0
        assert fake_llm.requests == []

    def test_llm_error_marks_failed_and_propagates(self, run_with_db, catalog, make_project):
        llm = FakeLLM(error=RuntimeError("rate limited"))

        async def scenario(database):
            project_id = await make_project(database)
            with pytest.raises(RuntimeError, match="rate limited"):
                await AgentExecutor(database, catalog, llm).execute_agent(project_id, 3, "hi")
            return await only_execution(database), await count_rows(database, Message)

        execution, message_count = run_with_db(scenario)

        assert execution.status == "FAILED"
        assert execution.error == "rate limited"
        assert execution.tokens_used is None
        assert message_count == 0
        assert len(llm.requests) == 1

    def test_persistence_failure_after_llm_marks_failed(
        self, monkeypatch, run_with_db, catalog, fake_llm, make_project
    ):
        def refuse_message(**kwargs):
            raise RuntimeError("message insert failed")

        monkeypatch.setattr(executor_module, "Message", refuse_message)

        async def scenario(database):
            project_id = await make_project(database)
            with pytest.raises(RuntimeError, match="message insert failed"):
                await AgentExecutor(database, catalog, fake_llm).execute_agent(project_id, 6, "hi")
            return await only_execution(database), await count_rows(database, Message)

        execution, message_count = run_with_db(scenario)

        assert len(fake_llm.requests) == 1
        assert execution.status == "FAILED"
        assert execution.error == "message insert failed"
        assert execution.output is None
        assert execution.tokens_used is None
        assert message_count == 0

    def test_failure_to_record_failed_keeps_original_error(
        self, monkeypatch, run_with_db, catalog, make_project
    ):
        llm = FakeLLM(error=RuntimeError("rate limited"))

        async def scenario(database):
            project_id = await make_project(database)
            executor = AgentExecutor(database, catalog, llm)
            real_session = database.session
            calls = 0

            def flaky_session():
                nonlocal calls
                calls += 1
                if calls == 3:
                    raise OSError("disk gone")
                return real_session()

            monkeypatch.setattr(database, "session", flaky_session)
            with pytest.raises(RuntimeError, match="rate limited"):
                await executor.execute_agent(project_id, 3, "hi")
            monkeypatch.setattr(database, "session", real_session)
            return await only_execution(database)

        execution = run_with_db(scenario)

        assert execution.status == "RUNNING"

    def test_repeated_calls_create_separate_executions(self, run_with_db, catalog, fake_llm, make_project):
        async def scenario(database):
            project_id = await make_project(database)
            executor = AgentExecutor(database, catalog, fake_llm)
            first = await executor.execute_agent(project_id, 0, "one")
            second = await executor.execute_agent(project_id, 0, "two")
            return first, second, await count_rows(database, AgentExecution), await count_rows(database, Message)

        first, second, executions, messages = run_with_db(scenario)

        assert first.execution_id != second.execution_id
        assert executions == 2
        assert messages == 4


class TestGetExecutionStatus:
    def test_returns_execution_with_messages(self, run_with_db, catalog, fake_llm, make_project):
        async def scenario(database):
            project_id = await make_project(database)
            executor = AgentExecutor(database, catalog, fake_llm)
            result = await executor.execute_agent(project_id, 4, "Review")
            return result, await executor.get_execution_status(result.execution_id)

        result, detail = run_with_db(scenario)

        assert detail.id == result.execution_id
        assert detail.status == "COMPLETED"
        assert {m.role for m in detail.messages} == {"USER", "AGENT"}

    def test_failed_execution_has_no_messages(self, run_with_db, catalog, fake_llm):
        async def scenario(database):
            executor = AgentExecutor(database, catalog, fake_llm)
            with pytest.raises(ProjectNotFoundError):
                await executor.execute_agent("nope", 4, "Review")
            execution = await only_execution(database)
            return await executor.get_execution_status(execution.id)

        detail = run_with_db(scenario)

        assert detail.status == "FAILED"
        assert detail.error == "Project not found"
        assert detail.messages == []

    def test_unknown_execution_is_none(self, run_with_db, catalog, fake_llm):
        async def scenario(database):
            return await AgentExecutor(database, catalog, fake_llm).get_execution_status("nope")

        assert run_with_db(scenario) is None
