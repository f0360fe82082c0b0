import os
import os.path
import plistlib
import tempfile
import unittest
from unittest.mock import patch

from colimalib.plumbing.common import (IdentityError, LifecycleError, PrerequisiteError, State,
                                       StepFailed, ValidationError)
from colimalib.plumbing.launchd import ServiceState
from colimalib.plumbing.porcelain import GROUPS, USERS
from colimalib.tasks import daemon

from .plumbing import make_config, make_half_created_host, make_host


class TestSetup(unittest.TestCase):

    def setUp(self):
        self.tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tempdir.cleanup)
        self.config = make_config(self.tempdir.name)
        self.porcelain = make_host()
        # The service account only exists in the fake, so ownership changes can't really happen.
        for target, kwargs in (("os.geteuid", {"return_value": 0}), ("os.chown", {})):
            patcher = patch(target, **kwargs)
            patcher.start()
            self.addCleanup(patcher.stop)

    def plist(self, unit):
        with open(self.config.plist_path(unit), "rb") as f:
            return f.read()

    def snapshot(self):
        return ({kind: dict(records) for kind, records in self.porcelain.records.items()},
                set(self.porcelain.loaded),
                [self.plist(unit) for unit in self.config.units],
                os.readlink(self.config.socket_link))

    def assertFailedAt(self, step, cause):
        with self.assertRaises(StepFailed) as ctx:
            daemon.setup(self.config, self.porcelain)
        self.assertEqual(ctx.exception.step, step)
        self.assertIsInstance(ctx.exception.cause, cause)
        return ctx.exception

    def test_setup(self):
        result = daemon.setup(self.config, self.porcelain)
        self.assertEqual(result.state, State.created)
        self.assertEqual(self.porcelain.read_record(GROUPS, "docker")["PrimaryGroupID"], ["21"])
        user = self.porcelain.read_record(USERS, "colima")
        self.assertEqual(user["UniqueID"], ["502"])
        self.assertEqual(user["PrimaryGroupID"], ["21"])
        self.assertEqual(user["NFSHomeDirectory"], [self.config.home])
        self.assertTrue(os.path.isdir(self.config.home))
        for unit in self.config.units:
            self.assertEqual(plistlib.loads(self.plist(unit))["Label"], unit.label)
        self.assertEqual(self.porcelain.loaded, {"colima.daemon", "colima.socket.permissions"})
        self.assertEqual(os.readlink(self.config.socket_link), self.config.socket_target)

    def test_setup_order(self):
        daemon.setup(self.config, self.porcelain)
        calls = [call[:2] for call in self.porcelain.calls]
        self.assertEqual(calls, [("create_record", GROUPS),
                                 ("create_record", USERS),
                                 ("bootout", "colima.daemon"),
                                 ("bootstrap", self.config.plist_path(self.config.units[0])),
                                 ("bootout", "colima.socket.permissions"),
                                 ("bootstrap", self.config.plist_path(self.config.units[1]))])

    def test_setup_rerun(self):
        daemon.setup(self.config, self.porcelain)
        first = self.snapshot()
        created = len(self.porcelain.created())
        self.porcelain.calls.clear()
        daemon.setup(self.config, self.porcelain)
        self.assertEqual(self.snapshot(), first)
        self.assertEqual(len(self.porcelain.created()), created)
        # Loaded units are cycled regardless, to pick up any changes.
        self.assertEqual([call[0] for call in self.porcelain.calls],
                         ["bootout", "bootstrap", "bootout", "bootstrap"])

    def test_setup_result_tree(self):
        result = daemon.setup(self.config, self.porcelain)
        lines = str(result).splitlines()
        self.assertEqual(lines[0], "colimalib.tasks.daemon:setup: created")
        self.assertIn("    colimalib.plumbing.identity:ensure_user: created", lines[3])

    def test_setup_replaces_socket_file(self):
        with open(self.config.socket_link, "w") as f:
            f.write("stale")
        daemon.setup(self.config, self.porcelain)
        self.assertTrue(os.path.islink(self.config.socket_link))
        self.assertEqual(os.readlink(self.config.socket_link), self.config.socket_target)

    def test_prerequisite_failure(self):
        with patch("os.geteuid", return_value=501):
            self.assertFailedAt("check prerequisites", PrerequisiteError)
        self.assertEqual(self.porcelain.calls, [])
        self.assertFalse(os.path.exists(self.config.home))

    def test_invalid_unit(self):
        self.porcelain.valid = False
        ex = self.assertFailedAt("set up unit colima.daemon", ValidationError)
        self.assertIn("set up unit colima.daemon", str(ex))
        self.assertFalse(os.path.exists(self.config.plist_path(self.config.units[0])))
        self.assertNotIn("bootstrap", [call[0] for call in self.porcelain.calls])
        self.assertFalse(os.path.lexists(self.config.socket_link))

    def test_load_failure(self):
        self.porcelain.loadable = False
        self.assertFailedAt("set up unit colima.daemon", LifecycleError)
        # Left installed but unloaded, and nothing after it is attempted.
        self.assertEqual(daemon.get_status(self.config, self.porcelain),
                         {"colima.daemon": ServiceState.installed,
                          "colima.socket.permissions": ServiceState.absent})
        self.assertFalse(os.path.lexists(self.config.socket_link))

    def test_recover_after_failure(self):
        self.porcelain.loadable = False
        self.assertFailedAt("set up unit colima.daemon", LifecycleError)
        self.porcelain.loadable = True
        daemon.setup(self.config, self.porcelain)
        self.assertEqual(len(self.porcelain.created()), 2)
        self.assertEqual(set(daemon.get_status(self.config, self.porcelain).values()),
                         {ServiceState.loaded})
        self.assertEqual(daemon.get_socket_target(self.config), self.config.socket_target)

    def test_recover_after_partial_account(self):
        self.porcelain.create_error = True
        self.porcelain.create_partial = True
        self.assertFailedAt("create group docker", IdentityError)
        self.porcelain.create_error = False
        daemon.setup(self.config, self.porcelain)
        self.assertEqual(self.porcelain.read_record(GROUPS, "docker")["PrimaryGroupID"], ["21"])
        self.assertEqual(self.porcelain.read_record(USERS, "colima")["PrimaryGroupID"], ["21"])

    def test_setup_half_created_group(self):
        self.porcelain = make_half_created_host()
        result = daemon.setup(self.config, self.porcelain)
        self.assertEqual(result.state, State.created)
        self.assertEqual(self.porcelain.read_record(GROUPS, "docker"), {"PrimaryGroupID": ["21"]})

    def test_setup_unit_value(self):
        unit = self.config.units[0]
        result = daemon.setup_unit(self.config, self.porcelain, unit)
        self.assertEqual(result.value, self.config.plist_path(unit))
        self.assertEqual(result.state, State.created)

    def test_home_collision(self):
        os.makedirs(os.path.dirname(self.config.home))
        with open(self.config.home, "w"):
            pass
        self.assertFailedAt("set up directory {}".format(self.config.home), OSError)

    def test_status_before_setup(self):
        self.assertEqual(set(daemon.get_status(self.config, self.porcelain).values()),
                         {ServiceState.absent})
        self.assertIsNone(daemon.get_socket_target(self.config))


if __name__ == "__main__":
    unittest.main()
