import os
import tempfile
import unittest

import freezegun
import mock

import deployment_options
import domain_configurator
import populate_rhdh_configs
import utils
from domain_configurator_test import fake_check_output


FROZEN_TIME = '2020-07-06 21:00:00'
TOKEN = domain_configurator.CLUSTER_PLACEHOLDER

APP_CONFIG = f"""app:
  baseUrl: https://rhdh.apps.{TOKEN}
backend:
  baseUrl: https://rhdh.apps.{TOKEN}
  cors:
    origin: https://rhdh.apps.{TOKEN}
"""

BACKSTAGE = """kind: Backstage
spec:
  application:
    route:
      enabled: true
"""


class TestPopulateRhdhConfigs(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.app_config = os.path.join(self.tmp.name, deployment_options.APP_CONFIG_FILE)
        self.backstage = os.path.join(self.tmp.name, deployment_options.BACKSTAGE_FILE)
        os.makedirs(os.path.dirname(self.app_config))
        with open(self.app_config, 'w') as f:
            f.write(APP_CONFIG)
        with open(self.backstage, 'w') as f:
            f.write(BACKSTAGE)

        patcher = mock.patch.object(utils, 'is_tool', return_value=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self.tmp.cleanup()

    def read(self, path):
        with open(path) as f:
            return f.read()

    @freezegun.freeze_time(FROZEN_TIME)
    def test_auto_detected_suffix_replaces_placeholders(self):
        responses = {'whoami': 'admin', 'ingresses.config.openshift.io': 'apps.mycluster.example.com'}
        with mock.patch.object(utils, 'check_output', side_effect=fake_check_output(responses)):
            exit_code = populate_rhdh_configs.main(['--repo-root', self.tmp.name])

        self.assertEqual(exit_code, 0)
        data = self.read(self.app_config)
        self.assertNotIn(TOKEN, data)
        self.assertEqual(data.count('rhdh.apps.mycluster.example.com'), 3)
        self.assertTrue(os.path.isfile(self.app_config + '.backup.20200706210000'))

        self.assertEqual(self.read(self.backstage), BACKSTAGE)
        self.assertFalse(os.path.exists(self.backstage + '.backup.20200706210000'))

    def test_empty_detection_touches_nothing(self):
        with mock.patch.object(utils, 'check_output', side_effect=fake_check_output({'whoami': 'admin'})):
            exit_code = populate_rhdh_configs.main(['--repo-root', self.tmp.name])

        self.assertEqual(exit_code, 1)
        self.assertEqual(self.read(self.app_config), APP_CONFIG)
        self.assertEqual(domain_configurator.find_backups(self.tmp.name), [])

    def test_only_one_file(self):
        paths = populate_rhdh_configs.target_files(self.tmp.name, 'backstage')
        self.assertEqual(paths, [self.backstage])

        with mock.patch.object(populate_rhdh_configs.log, 'info') as log_info:
            results = populate_rhdh_configs.populate(paths, 'mycluster.example.com')
        self.assertEqual(results[0].status, domain_configurator.SKIPPED)
        self.assertIn(TOKEN, self.read(self.app_config))
        self.assertFalse(any('Replaced all occurrences' in c[0][0] for c in log_info.call_args_list))

    def test_host_overrides(self):
        substitutions = populate_rhdh_configs.substitutions_for(
            'mycluster.example.com', keycloak_domain='sso.example.com', rhdh_domain='portal.example.com')
        self.assertEqual(substitutions, {
            TOKEN: 'mycluster.example.com',
            domain_configurator.host_token('keycloak-rhdh-operator'): 'sso.example.com',
            domain_configurator.host_token('rhdh'): 'portal.example.com',
        })

        results = populate_rhdh_configs.populate(
            [self.app_config], 'mycluster.example.com', rhdh_domain='portal.example.com', backup=False)
        self.assertEqual(results[0].replacements, 3)
        self.assertEqual(self.read(self.app_config).count('https://portal.example.com'), 3)

    def test_missing_file_exit_code(self):
        os.remove(self.backstage)
        responses = {'whoami': 'admin', 'ingresses.config.openshift.io': 'apps.mycluster.example.com'}
        with mock.patch.object(utils, 'check_output', side_effect=fake_check_output(responses)):
            with mock.patch.object(populate_rhdh_configs.log, 'error') as log_error:
                exit_code = populate_rhdh_configs.main(['--repo-root', self.tmp.name, '--only', 'backstage'])
        self.assertEqual(exit_code, 1)
        self.assertIn('File not found', str(log_error.call_args[0][1]))


if __name__ == '__main__':
    unittest.main()
