import os, json, tempfile
from pathlib import Path
import unittest as test

from alfsoap import config as cfgmod
from alfsoap.config import ConfigurationException

datadir = Path(__file__).parents[0] / 'data'
cfgfile = datadir / 'config.yml'

tmpdir = tempfile.TemporaryDirectory(prefix="_test_config.")

def tearDownModule():
    tmpdir.cleanup()

class TestLoad(test.TestCase):

    def test_load_yaml(self):
        cfg = cfgmod.load_from_file(str(cfgfile))
        self.assertEqual(cfg['url'], "http://alfresco.example.org:8080/")
        self.assertEqual(cfg['username'], "admin")
        self.assertEqual(cfg['store']['address'], "SpacesStore")
        self.assertEqual(cfg['max_path_depth'], 20)

    def test_load_json(self):
        path = os.path.join(tmpdir.name, "cfg.json")
        with open(path, 'w') as fd:
            json.dump({ "url": "http://localhost:8080", "timeout": 5 }, fd)
        cfg = cfgmod.load_from_file(path)
        self.assertEqual(cfg, { "url": "http://localhost:8080", "timeout": 5 })

    def test_load_not_a_dict(self):
        path = os.path.join(tmpdir.name, "list.yml")
        with open(path, 'w') as fd:
            fd.write("- a\n- b\n")
        with self.assertRaises(ValueError):
            cfgmod.load_from_file(path)

    def test_load_empty(self):
        path = os.path.join(tmpdir.name, "empty.yml")
        with open(path, 'w') as fd:
            fd.write("")
        self.assertEqual(cfgmod.load_from_file(path), {})

    def test_load_missing(self):
        with self.assertRaises(IOError):
            cfgmod.load_from_file(os.path.join(tmpdir.name, "goober.yml"))

class TestMerge(test.TestCase):

    def test_merge(self):
        defc = { "store": { "scheme": "workspace", "address": "SpacesStore" }, "timeout": 30 }
        prim = { "store": { "scheme": "archive" }, "url": "x" }
        out = cfgmod.merge_config(prim, defc)
        self.assertEqual(out, { "store": { "scheme": "archive", "address": "SpacesStore" },
                                "timeout": 30, "url": "x" })
        self.assertEqual(defc['store']['scheme'], "workspace")

    def test_from_env(self):
        env = { "ALFRESCO_URL": "http://env:8080", "ALFRESCO_USER": "envuser",
                "ALFRESCO_PASSWORD": "envpw" }
        out = cfgmod.config_from_env({ "username": "admin" }, env)
        self.assertEqual(out, { "url": "http://env:8080", "username": "admin",
                                "password": "envpw" })
        self.assertEqual(cfgmod.config_from_env(None, {}), {})

class TestValidate(test.TestCase):

    def setUp(self):
        self.cfg = { "url": "http://localhost:8080/", "username": "admin", "password": "admin" }

    def test_defaults(self):
        out = cfgmod.validate(self.cfg)
        self.assertEqual(out['url'], "http://localhost:8080")
        self.assertEqual(out['store'], { "scheme": "workspace", "address": "SpacesStore" })
        self.assertEqual(out['timeout'], 30.0)
        self.assertEqual(out['max_path_depth'], 50)
        self.assertEqual(self.cfg['url'], "http://localhost:8080/")

    def test_missing(self):
        del self.cfg['password']
        with self.assertRaises(ConfigurationException) as cm:
            cfgmod.validate(self.cfg)
        self.assertEqual(cm.exception.param, "password")

        with self.assertRaises(ConfigurationException) as cm:
            cfgmod.validate({})
        self.assertIn("url, username, password", str(cm.exception))

    def test_bad_values(self):
        for param, val in [("timeout", "soon"), ("timeout", 0), ("max_path_depth", -1),
                           ("max_path_depth", None), ("store", "workspace"),
                           ("store", { "scheme": "" })]:
            cfg = dict(self.cfg)
            cfg[param] = val
            with self.assertRaises(ConfigurationException, msg=f"{param}={val!r}") as cm:
                cfgmod.validate(cfg)
            self.assertEqual(cm.exception.param, param)

    def test_coercion(self):
        self.cfg['timeout'] = "12.5"
        self.cfg['max_path_depth'] = "10"
        out = cfgmod.validate(self.cfg)
        self.assertEqual(out['timeout'], 12.5)
        self.assertEqual(out['max_path_depth'], 10)


if __name__ == '__main__':
    test.main()
