import os
import tempfile
import unittest

import mock

import deployment_options
import domain_configurator
import override_keycloak_domains
import utils
from domain_configurator_test import fake_check_output


KEYCLOAK_TOKEN = override_keycloak_domains.KEYCLOAK_TOKEN
RHDH_TOKEN = override_keycloak_domains.RHDH_TOKEN

INSTANCE = f"""kind: Keycloak
metadata:
  annotations:
    adminUrl: 'https://{KEYCLOAK_TOKEN}'
spec:
  hostname:
    hostname: {KEYCLOAK_TOKEN}
"""

REALM = f"""kind: KeycloakRealmImport
spec:
  realm:
    clients:
      - rootUrl: https://{RHDH_TOKEN}
        redirectUris:
          - https://{RHDH_TOKEN}/api/auth/*
"""


class TestOverrideKeycloakDomains(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.instance = os.path.join(self.tmp.name, deployment_options.KEYCLOAK_INSTANCE_FILE)
        self.realm = os.path.join(self.tmp.name, deployment_options.KEYCLOAK_REALM_FILE)
        os.makedirs(os.path.dirname(self.instance))
        with open(self.instance, 'w') as f:
            f.write(INSTANCE)
        with open(self.realm, 'w') as f:
            f.write(REALM)

    def tearDown(self):
        self.tmp.cleanup()

    def read(self, path):
        with open(path) as f:
            return f.read()

    def test_manual_domains(self):
        exit_code = override_keycloak_domains.main(
            ['--repo-root', self.tmp.name, '-k', 'sso.example.com', '-r', 'portal.example.com', '--no-backup'])

        self.assertEqual(exit_code, 0)
        instance = self.read(self.instance)
        self.assertIn("adminUrl: 'https://sso.example.com'", instance)
        self.assertIn("hostname: sso.example.com", instance)
        realm = self.read(self.realm)
        self.assertIn("rootUrl: https://portal.example.com", realm)
        self.assertIn("https://portal.example.com/api/auth/*", realm)
        self.assertEqual(domain_configurator.find_backups(self.tmp.name), [])

    def test_backups_created_by_default(self):
        override_keycloak_domains.main(['--repo-root', self.tmp.name, '-k', 'sso.example.com', '-r', 'portal.example.com'])
        self.assertEqual(len(domain_configurator.find_backups(self.tmp.name)), 2)

    def test_dry_run(self):
        exit_code = override_keycloak_domains.main(
            ['--repo-root', self.tmp.name, '-k', 'sso.example.com', '-r', 'portal.example.com', '--dry-run'])
        self.assertEqual(exit_code, 0)
        self.assertEqual(self.read(self.instance), INSTANCE)
        self.assertEqual(self.read(self.realm), REALM)
        self.assertEqual(domain_configurator.find_backups(self.tmp.name), [])

    def test_missing_domain(self):
        exit_code = override_keycloak_domains.main(['--repo-root', self.tmp.name, '-k', 'sso.example.com'])
        self.assertEqual(exit_code, 1)
        self.assertEqual(self.read(self.instance), INSTANCE)

    def test_invalid_domain(self):
        exit_code = override_keycloak_domains.main(
            ['--repo-root', self.tmp.name, '-k', 'sso_example.com', '-r', 'portal.example.com'])
        self.assertEqual(exit_code, 1)
        self.assertEqual(self.read(self.instance), INSTANCE)

    @mock.patch.object(utils, 'is_tool', return_value=True)
    def test_auto_detect(self, _):
        responses = {'whoami': 'admin', 'ingresses.config.openshift.io': 'apps.mycluster.example.com'}
        with mock.patch.object(utils, 'check_output', side_effect=fake_check_output(responses)):
            exit_code = override_keycloak_domains.main(['--repo-root', self.tmp.name, '-a', '--no-backup'])

        self.assertEqual(exit_code, 0)
        self.assertIn("hostname: keycloak-rhdh-operator.apps.mycluster.example.com", self.read(self.instance))
        self.assertIn("rootUrl: https://rhdh.apps.mycluster.example.com", self.read(self.realm))

    def test_second_run_reports_already_configured(self):
        args = ['--repo-root', self.tmp.name, '-k', 'sso.example.com', '-r', 'portal.example.com', '--no-backup']
        override_keycloak_domains.main(args)
        configured = self.read(self.instance)

        results = override_keycloak_domains.override(
            override_keycloak_domains.target_files(self.tmp.name), 'other.example.com', 'another.example.com')
        self.assertTrue(all(r.status == domain_configurator.SKIPPED for r in results))
        self.assertEqual(self.read(self.instance), configured)


if __name__ == '__main__':
    unittest.main()
