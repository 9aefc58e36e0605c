"""Test that project structure is correct and modules can be imported."""

import modmap.detect
import modmap.graph
import modmap.models
import modmap.scanner
from modmap.models import DependencyNode, ScanOptions


def test_modmap_modules_importable():
    """Ensure modmap modules can be imported."""
    assert hasattr(modmap.models, "DependencyNode")
    assert hasattr(modmap.models, "DependencyGraph")
    assert hasattr(modmap.graph, "compute_depths")
    assert hasattr(modmap.scanner, "DependencyScanner")
    assert hasattr(modmap.detect, "find_workspace_roots")


def test_model_creation():
    """Test that basic models can be instantiated."""
    node = DependencyNode(id="express@4.18.2-app", name="express", version="4.18.2")
    assert node.kind == "dependency"
    assert node.status == "up-to-date"
    assert node.color == "#4CAF50"

    options = ScanOptions()
    assert options.max_depth == 3
    assert options.includes("devDependency")
