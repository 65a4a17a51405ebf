import os, sys
from setuptools import setup, find_namespace_packages
from setuptools.command.build_py import build_py as _build

CLASSIFIERS = [
    'Operating System :: POSIX',
    'Operating System :: MacOS :: MacOS X',
    'Intended Audience :: Developers',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Framework :: AsyncIO',
    'Topic :: Software Development :: Libraries'
]

pkgdir = os.path.dirname(os.path.abspath(__file__))

def get_version():
    out = "dev"
    versfile = os.path.join(pkgdir, 'VERSION')
    if os.path.exists(versfile):
        with open(versfile) as fd:
            parts = fd.readline().split()
        if len(parts) > 0:
            out = parts[-1]
    else:
        out = "(unknown)"
    return out

def write_version_mod(version):
    versmodf = os.path.join(pkgdir, 'python', 'alfsoap', "version.py")
    print("setting version for alfsoap")
    with open(versmodf, 'w') as fd:
        fd.write('"""')
        fd.write("""
An identification of the package version.  Note that this module file gets 
(over-) written by the build process.  
""")
        fd.write('"""\n\n')
        fd.write('__version__ = "')
        fd.write(version)
        fd.write('"\n')

class build(_build):

    def run(self):
        write_version_mod(get_version())
        _build.run(self)

setup(name='alfsoap',
      version=get_version(),
      description="alfsoap: an asynchronous client for the Alfresco SOAP web services",
      python_requires='>=3.8',
      package_dir={'': 'python'},
      packages=find_namespace_packages(where='python', include=['alfsoap', 'alfsoap.*']),
      install_requires=[ "httpx", "lxml", "PyYAML" ],
      extras_require={ "test": [ "pytest" ] },
      scripts=[ 'scripts/alfbrowse.py' ],
      cmdclass={'build_py': build},
      classifiers=CLASSIFIERS,
      zip_safe=False
)
