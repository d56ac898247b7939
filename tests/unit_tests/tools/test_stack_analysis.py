###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from dataclasses import replace

from tpudoc.data.compatibility import CompatibilityStatus
from tpudoc.platform.mock import MockEnvironment
from tpudoc.tools.findings import Severity
from tpudoc.tools.stack_analysis import analyze_stack, detect_version, format_stack_text


def _plugin_ready(**packages):
    env = MockEnvironment.healthy_v5e_8().with_env(TPU_LIBRARY_PATH="/usr/local/lib/libtpu.so")
    if packages:
        env = replace(env, packages={**env.packages, **packages})
    return env


def _descriptions(analysis):
    return [f.description for f in analysis.findings]


class TestDetectVersion:
    def test_package_metadata(self):
        detected = detect_version(MockEnvironment.healthy_v5e_8(), "JAX", "jax", "JAX_VERSION")
        assert (detected.version, detected.method) == ("0.4.35", "package metadata")

    def test_environment_override_wins(self):
        env = MockEnvironment.healthy_v5e_8().with_env(JAX_VERSION="0.4.33")
        detected = detect_version(env, "JAX", "jax", "JAX_VERSION")
        assert (detected.version, detected.method) == ("0.4.33", "JAX_VERSION env var")

    def test_not_installed(self):
        detected = detect_version(MockEnvironment.non_tpu_vm(), "JAX", "jax")
        assert (detected.version, detected.method) == (None, "not found")


class TestAnalyzeStack:
    def test_supported_stack_is_compatible(self):
        analysis = analyze_stack(_plugin_ready())
        assert analysis.status is CompatibilityStatus.COMPATIBLE
        assert analysis.findings == ()
        assert analysis.recommendations == ()
        assert analysis.version_of("Python") == "3.11.5"
        assert analysis.version_of("libtpu") == "0.0.5"

    def test_missing_plugin_path_warns(self):
        analysis = analyze_stack(MockEnvironment.healthy_v5e_8())
        assert analysis.status is CompatibilityStatus.COMPATIBLE_WITH_WARNINGS
        assert _descriptions(analysis) == ["PJRT TPU plugin not detected"]

    def test_old_python_is_incompatible(self):
        analysis = analyze_stack(replace(_plugin_ready(), python="3.8.18"))
        assert analysis.status is CompatibilityStatus.INCOMPATIBLE
        assert analysis.findings[0].severity is Severity.ERROR
        assert "below minimum required version 3.9" in analysis.findings[0].description
        assert "Fix critical issues before running workloads" in analysis.recommendations

    def test_new_python_warns(self):
        analysis = analyze_stack(replace(_plugin_ready(), python="3.13.0"))
        assert analysis.status is CompatibilityStatus.COMPATIBLE_WITH_WARNINGS
        assert "Python 3.13.0 may not be fully tested with JAX" in _descriptions(analysis)
        assert "Python 3.13.0 is outside the tested range 3.9-3.12 for JAX 0.4.35" in _descriptions(analysis)

    def test_jaxlib_mismatch_is_an_error(self):
        analysis = analyze_stack(_plugin_ready(jaxlib="0.5.0"))
        assert analysis.status is CompatibilityStatus.INCOMPATIBLE
        assert "JAX 0.4.35 and jaxlib 0.5.0 version mismatch" in _descriptions(analysis)

    def test_unlisted_jax_recommends_the_supported_release(self):
        analysis = analyze_stack(_plugin_ready(jax="0.4.20", jaxlib="0.4.20"))
        assert analysis.status is CompatibilityStatus.COMPATIBLE
        assert analysis.findings[0].severity is Severity.INFO
        assert "not in the compatibility matrix" in analysis.findings[0].description
        assert analysis.recommendations == ("Recommended JAX version for your TPU: 0.4.35",)

    def test_known_conflicts_use_their_severity(self):
        analysis = analyze_stack(_plugin_ready(tensorflow="2.14.0", torch="2.4.0"))
        severities = {f.description: f.severity for f in analysis.findings}
        assert severities["TensorFlow 2.14 and earlier conflict with JAX 0.4.30+"] is Severity.WARNING
        assert severities["JAX and PyTorch may conflict when both try to use TPU"] is Severity.INFO
        assert analysis.status is CompatibilityStatus.COMPATIBLE_WITH_WARNINGS

    def test_without_jax_status_is_unknown(self):
        env = MockEnvironment.non_tpu_vm().with_env(TPU_LIBRARY_PATH="/usr/lib/libtpu.so")
        analysis = analyze_stack(env)
        assert analysis.status is CompatibilityStatus.UNKNOWN
        assert analysis.version_of("JAX") is None

    def test_to_dict(self):
        data = analyze_stack(MockEnvironment.healthy_v5e_8()).to_dict()
        assert data["status"] == "compatible_with_warnings"
        assert data["versions"][1] == {"package": "JAX", "version": "0.4.35", "detection_method": "package metadata"}
        assert data["issues"][0]["severity"] == "warning"


class TestStackText:
    def test_sections(self):
        text = format_stack_text(analyze_stack(MockEnvironment.healthy_v5e_8()))
        assert "SOFTWARE STACK ANALYSIS" in text
        assert "Stack Status: COMPATIBLE (with warnings)" in text
        assert "DETECTED VERSIONS" in text
        assert "Resolution: Ensure TPU_LIBRARY_PATH is set correctly" in text
        assert "(package metadata)" not in text

    def test_verbose_shows_detection_method(self):
        text = format_stack_text(analyze_stack(MockEnvironment.non_tpu_vm()), verbose=True)
        assert "Not found" in text
        assert "(not found)" in text
        assert "(interpreter)" in text
