"""
Unit tests for loading workflows from the workflows directory.
"""

import json
import tempfile
import unittest
from pathlib import Path

from workflow_errors import ConfigError, WorkflowNotFoundError, WorkflowValidationError
from workflow_loader import (
    create_workflow_template,
    list_workflows,
    load_workflow,
    load_workflow_definition,
)


class TestWorkflowLoader(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workflows_dir = Path(self.temp_dir.name) / "workflows"

    def tearDown(self):
        self.temp_dir.cleanup()

    def add(self, name, filename, content):
        workflow_dir = self.workflows_dir / name
        workflow_dir.mkdir(parents=True, exist_ok=True)
        (workflow_dir / filename).write_text(content)

    def test_not_found(self):
        with self.assertRaises(WorkflowNotFoundError) as ctx:
            load_workflow("ghost", self.workflows_dir)
        self.assertIn("ghost", str(ctx.exception))

    def test_json_definition_with_config(self):
        self.add("tour", "actions.json", json.dumps([{"type": "goto", "url": "https://example.com"}]))
        self.add("tour", "config.json", json.dumps({"browser": {"headless": True}}))
        definition = load_workflow_definition("tour", self.workflows_dir)
        self.assertEqual(definition["name"], "tour")
        self.assertEqual(definition["config"], {"browser": {"headless": True}})

        workflow = load_workflow("tour", self.workflows_dir)
        self.assertEqual(len(workflow.actions), 1)
        self.assertTrue(workflow.config.browser.headless)

    def test_wrapped_definition_keeps_inline_config(self):
        self.add("wrapped", "actions.json", json.dumps({
            "actions": [{"type": "goto", "url": "https://example.com"}],
            "config": {"browser": {"headless": True}},
        }))
        definition = load_workflow_definition("wrapped", self.workflows_dir)
        self.assertEqual(definition["config"], {"browser": {"headless": True}})

        workflow = load_workflow("wrapped", self.workflows_dir)
        self.assertEqual(len(workflow.actions), 1)
        self.assertTrue(workflow.config.browser.headless)

    def test_config_file_overrides_inline_config(self):
        self.add("wrapped", "actions.json", json.dumps({
            "actions": [{"type": "press", "key": "a"}],
            "config": {"video": {"fps": 60}},
        }))
        self.add("wrapped", "config.json", json.dumps({"video": {"fps": 24}}))
        with self.assertLogs("workflow_loader", level="WARNING"):
            definition = load_workflow_definition("wrapped", self.workflows_dir)
        self.assertEqual(definition["config"], {"video": {"fps": 24}})

    def test_yaml_definition(self):
        self.add("yaml-tour", "actions.yaml",
                 "- type: goto\n  url: https://example.com\n- type: press\n  key: Enter\n")
        workflow = load_workflow("yaml-tour", self.workflows_dir)
        self.assertEqual([a.type for a in workflow.actions], ["goto", "press"])

    def test_broken_json(self):
        self.add("broken", "actions.json", "[{")
        with self.assertRaises(ConfigError):
            load_workflow("broken", self.workflows_dir)

    def test_invalid_actions(self):
        self.add("bad", "actions.json", json.dumps([{"type": "click"}]))
        with self.assertRaises(WorkflowValidationError):
            load_workflow("bad", self.workflows_dir)

    def test_list_workflows(self):
        self.assertEqual(list_workflows(self.workflows_dir), [])
        self.add("zeta", "actions.json", "[]")
        self.add("alpha", "actions.yaml", "[]")
        (self.workflows_dir / "empty").mkdir()
        self.assertEqual(list_workflows(self.workflows_dir), ["alpha", "zeta"])

    def test_template_is_valid(self):
        create_workflow_template("example", self.workflows_dir)
        workflow = load_workflow("example", self.workflows_dir)
        self.assertEqual([a.type for a in workflow.actions], ["goto", "waitForSelector", "screenshot"])
        with self.assertRaises(FileExistsError):
            create_workflow_template("example", self.workflows_dir)


if __name__ == '__main__':
    unittest.main()
