#!/usr/bin/env python
"""SO(3) rotations with exact Jacobians for nonlinear least-squares

Rotation matrices and quaternions with the exponential and log maps,
Cayley and exponential map charts, the group action on points and unit
directions, and Euler angles through an RQ decomposition. The closed
forms are derived with the Casadi framework.
"""

from setuptools import setup, find_packages
import sys

if sys.version_info < (3, 8):
    raise SystemExit("requires  Python >= 3.8")

DOCLINES = __doc__.split("\n")

CLASSIFIERS = """\
Development Status :: 3 - Alpha
Intended Audience :: Science/Research
Intended Audience :: Developers
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Topic :: Software Development
Topic :: Scientific/Engineering :: Mathematics
Topic :: Scientific/Engineering :: Physics
Operating System :: Microsoft :: Windows
Operating System :: POSIX
Operating System :: Unix
Operating System :: MacOS
"""

# pylint: disable=invalid-name

package_name = "pyrot3"

setup(
    name=package_name,
    description=DOCLINES[0],
    long_description="\n".join(DOCLINES[2:]),
    license="BSD 3-Clause",
    classifiers=[_f for _f in CLASSIFIERS.split("\n") if _f],
    platforms=["Windows", "Linux", "Solaris", "Mac OS-X", "Unix"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "casadi",
    ],
    extras_require={
        "test": ["pytest", "scipy"],
    },
    packages=find_packages(include=["pyrot3", "pyrot3.*"]),
    version="0.1.0",
    zip_safe=True,
)
