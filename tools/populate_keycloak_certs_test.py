import os
import tempfile
import unittest

import freezegun
import mock
import yaml

import errors
import populate_keycloak_certs
import utils


FROZEN_TIME = '2020-07-06 21:00:00'


class TestPopulateKeycloakCerts(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.secret_file = os.path.join(self.tmp.name, '3-secret.yaml')
        with open(self.secret_file, 'w') as f:
            f.write('kind: Secret\n')

    def tearDown(self):
        self.tmp.cleanup()

    @mock.patch.object(utils, 'check_if_exists', return_value=True)
    def test_extract_certificate(self, check_if_exists):
        with mock.patch.object(utils, 'get_jsonpath', side_effect=['Y3J0', 'a2V5']) as get_jsonpath:
            self.assertEqual(populate_keycloak_certs.extract_certificate('openshift-ingress', 'router-certs'),
                             ('Y3J0', 'a2V5'))
        check_if_exists.assert_called_with('secret', 'router-certs', namespace='openshift-ingress')
        get_jsonpath.assert_any_call('secret', 'router-certs', r'{.data.tls\.crt}', namespace='openshift-ingress')

    @mock.patch.object(utils, 'check_if_exists', return_value=False)
    def test_missing_secret(self, _):
        with self.assertRaises(errors.CertificateExtractionError):
            populate_keycloak_certs.extract_certificate('openshift-ingress', 'missing')

    @mock.patch.object(utils, 'check_if_exists', return_value=True)
    def test_empty_certificate(self, _):
        with mock.patch.object(utils, 'get_jsonpath', side_effect=['Y3J0', '']):
            with self.assertRaises(errors.CertificateExtractionError):
                populate_keycloak_certs.extract_certificate('openshift-ingress', 'router-certs')

    @freezegun.freeze_time(FROZEN_TIME)
    def test_populate_writes_tls_secret(self):
        with mock.patch.object(populate_keycloak_certs, 'extract_certificate', return_value=('Y3J0', 'a2V5')):
            backup_path = populate_keycloak_certs.populate(self.secret_file, target_secret='kc-tls')

        self.assertEqual(backup_path, self.secret_file + '.backup.20200706210000')
        with open(self.secret_file) as f:
            secret = yaml.safe_load(f)
        self.assertEqual(secret['type'], 'kubernetes.io/tls')
        self.assertEqual(secret['metadata'], {'name': 'kc-tls', 'namespace': 'demo-project'})
        self.assertEqual(secret['data'], {'tls.crt': 'Y3J0', 'tls.key': 'a2V5'})

    def test_populate_dry_run(self):
        with mock.patch.object(populate_keycloak_certs, 'extract_certificate', return_value=('Y3J0', 'a2V5')):
            populate_keycloak_certs.populate(self.secret_file, dry_run=True)

        with open(self.secret_file) as f:
            self.assertEqual(f.read(), 'kind: Secret\n')
        self.assertEqual(os.listdir(self.tmp.name), ['3-secret.yaml'])


if __name__ == '__main__':
    unittest.main()
