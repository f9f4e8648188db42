"""
Tests for SSH/SFTP session setup. paramiko.SSHClient is mocked out.
"""
import base64
import hashlib
import socket
import unittest
from unittest import mock

import paramiko

from syncscp.config import CONNECT_TIMEOUT, HostKeyPolicy
from syncscp.core import ssh_manager
from syncscp.core.ssh_manager import (
    AcceptAnyPolicy, PinnedFingerprintPolicy, Session, build_policy, connect,
    key_fingerprint,
)
from syncscp.errors import ConnectError


class FakeKey:
    def __init__(self, blob=b"ssh-ed25519 fake key blob"):
        self._blob = blob

    def asbytes(self):
        return self._blob

    def get_name(self):
        return "ssh-ed25519"


def _fp(blob):
    return "SHA256:" + base64.b64encode(hashlib.sha256(blob).digest()).decode().rstrip("=")


class TestHostKeyPolicies(unittest.TestCase):

    def test_fingerprint_format(self):
        key = FakeKey()
        self.assertEqual(key_fingerprint(key), _fp(key.asbytes()))
        self.assertFalse(key_fingerprint(key).endswith("="))

    def test_accept_any_accepts(self):
        AcceptAnyPolicy().missing_host_key(None, "host", FakeKey())

    def test_pinned_accepts_match(self):
        key = FakeKey()
        PinnedFingerprintPolicy(_fp(key.asbytes())).missing_host_key(None, "host", key)

    def test_pinned_accepts_match_without_prefix(self):
        key = FakeKey()
        bare = _fp(key.asbytes())[len("SHA256:"):] + "="
        PinnedFingerprintPolicy(bare).missing_host_key(None, "host", key)

    def test_pinned_rejects_mismatch(self):
        policy = PinnedFingerprintPolicy(_fp(b"another key"))
        with self.assertRaises(paramiko.SSHException):
            policy.missing_host_key(None, "host", FakeKey())

    def test_build_policy(self):
        self.assertIsInstance(build_policy(HostKeyPolicy.ACCEPT_ANY), AcceptAnyPolicy)
        self.assertIsInstance(build_policy(HostKeyPolicy.FINGERPRINT, "SHA256:abc"),
                              PinnedFingerprintPolicy)
        self.assertIsInstance(build_policy(HostKeyPolicy.KNOWN_HOSTS), paramiko.RejectPolicy)
        with self.assertRaises(ConnectError):
            build_policy(HostKeyPolicy.FINGERPRINT)


class TestConnect(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch.object(ssh_manager.paramiko, "SSHClient")
        self.SSHClient = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.SSHClient.return_value

    def test_password_auth_with_fixed_timeout(self):
        session = connect("deploy", "secret", "example.com:2222")
        self.assertIsInstance(session, Session)
        kwargs = self.client.connect.call_args.kwargs
        self.assertEqual(kwargs["hostname"], "example.com")
        self.assertEqual(kwargs["port"], 2222)
        self.assertEqual(kwargs["username"], "deploy")
        self.assertEqual(kwargs["password"], "secret")
        self.assertEqual(kwargs["timeout"], CONNECT_TIMEOUT)
        self.assertEqual(CONNECT_TIMEOUT, 30)
        self.assertFalse(kwargs["look_for_keys"])
        self.assertFalse(kwargs["allow_agent"])
        policy = self.client.set_missing_host_key_policy.call_args.args[0]
        self.assertIsInstance(policy, AcceptAnyPolicy)
        self.client.open_sftp.assert_called_once_with()

    def test_dial_failure_raises_connect_error(self):
        self.client.connect.side_effect = socket.timeout("timed out")
        with self.assertRaises(ConnectError):
            connect("deploy", "secret", "example.com:22")
        self.client.close.assert_called_once_with()
        self.client.open_sftp.assert_not_called()

    def test_auth_failure_raises_connect_error(self):
        self.client.connect.side_effect = paramiko.AuthenticationException("denied")
        with self.assertRaises(ConnectError):
            connect("deploy", "wrong", "example.com:22")

    def test_sftp_failure_raises_connect_error(self):
        self.client.open_sftp.side_effect = paramiko.SSHException("subsystem request failed")
        with self.assertRaises(ConnectError):
            connect("deploy", "secret", "example.com:22")
        self.client.close.assert_called_once_with()

    def test_known_hosts_policy_loads_file(self):
        connect("deploy", "secret", "example.com:22",
                host_key_policy=HostKeyPolicy.KNOWN_HOSTS, known_hosts="/tmp/kh")
        self.client.load_host_keys.assert_called_once_with("/tmp/kh")
        policy = self.client.set_missing_host_key_policy.call_args.args[0]
        self.assertIsInstance(policy, paramiko.RejectPolicy)

    def test_known_hosts_missing_file(self):
        self.client.load_host_keys.side_effect = FileNotFoundError("no such file")
        with self.assertRaises(ConnectError):
            connect("deploy", "secret", "example.com:22",
                    host_key_policy=HostKeyPolicy.KNOWN_HOSTS, known_hosts="/nope")
        self.client.connect.assert_not_called()


class TestSession(unittest.TestCase):

    def test_context_manager_closes_both(self):
        ssh, sftp = mock.Mock(), mock.Mock()
        with Session(ssh, sftp) as s:
            s.open("/x", "rb")
        sftp.open.assert_called_once_with("/x", "rb")
        sftp.close.assert_called_once_with()
        ssh.close.assert_called_once_with()

    def test_closes_transport_even_if_sftp_close_fails(self):
        ssh, sftp = mock.Mock(), mock.Mock()
        sftp.close.side_effect = OSError("broken pipe")
        with self.assertRaises(OSError):
            Session(ssh, sftp).close()
        ssh.close.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
