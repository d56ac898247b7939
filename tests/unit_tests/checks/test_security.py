###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from dataclasses import replace

from tpudoc.checks.security import (
    check_encryption,
    check_firewall,
    check_metadata_access,
    check_network_exposure,
    check_service_account,
    check_ssh_keys,
    check_workload_identity,
)
from tpudoc.core.engine.models import CheckStatus
from tpudoc.platform.mock import MockEnvironment


class TestSecurityChecks:
    def setup_method(self):
        self.healthy = MockEnvironment.healthy_v5e_8()
        self.risky = MockEnvironment.security_issues()

    def test_service_account(self):
        outcome = check_service_account(self.healthy)
        assert outcome.status is CheckStatus.PASS
        assert outcome.message == "Service account: trainer@my-project.iam.gserviceaccount.com"

    def test_service_account_broad_scopes(self):
        assert check_service_account(self.risky).status is CheckStatus.WARN

    def test_network_exposure(self):
        assert check_network_exposure(self.healthy).message == "No services exposed on all interfaces"
        outcome = check_network_exposure(self.risky)
        assert outcome.status is CheckStatus.WARN
        assert outcome.message == "2 potentially exposed port(s): 22, 8888"

    def test_network_exposure_uncommon_ports(self):
        env = replace(self.healthy, listening=(9100,))
        assert check_network_exposure(env).status is CheckStatus.PASS

    def test_workload_identity(self):
        assert check_workload_identity(self.healthy).status is CheckStatus.PASS
        assert check_workload_identity(self.risky).message == "Using default Compute Engine service account"

    def test_workload_identity_on_gke(self):
        metadata = {**self.risky.metadata_values, "instance/attributes/gke-cluster-name": "training"}
        env = replace(self.risky, metadata_values=metadata)
        assert check_workload_identity(env).status is CheckStatus.PASS

    def test_encryption(self):
        assert check_encryption(self.healthy).status is CheckStatus.PASS

    def test_metadata_access(self):
        assert check_metadata_access(self.healthy).status is CheckStatus.PASS
        assert check_metadata_access(self.risky).status is CheckStatus.WARN

    def test_os_login(self):
        assert check_ssh_keys(self.healthy).message == "OS Login enabled"
        assert check_ssh_keys(self.risky).message == "OS Login not enabled"

    def test_firewall_is_advisory(self):
        assert check_firewall(MockEnvironment.non_tpu_vm()).status is CheckStatus.PASS

    def test_off_gcp_skips(self):
        env = MockEnvironment.non_tpu_vm()
        for check in (
            check_service_account,
            check_workload_identity,
            check_encryption,
            check_metadata_access,
            check_ssh_keys,
        ):
            outcome = check(env)
            assert outcome.status is CheckStatus.SKIP
            assert outcome.reason == "Not running on GCP"
