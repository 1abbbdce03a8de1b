import os

from setuptools import setup

MODULES = [
    "chip8",
    "config",
    "cpu",
    "disasm",
    "display",
    "errors",
    "headless_run",
    "instance_manager",
    "memory",
    "quirks",
    "utils",
]

# Hot-path modules; compiled with Cython only when CHIPZ_CYTHONIZE=1
ACCELERATED = ["cpu", "display", "memory"]

ext_modules = []
if os.environ.get("CHIPZ_CYTHONIZE") == "1":
    from Cython.Build import cythonize

    ext_modules = cythonize(
        [f"{name}.py" for name in ACCELERATED],
        compiler_directives={
            "boundscheck": False,
            "wraparound": False,
            "cdivision": True,
            "language_level": 3,
        },
    )

setup(
    name="chipz",
    version="0.1.0",
    description="CHIP-8 virtual machine with selectable dialect quirks",
    python_requires=">=3.9",
    py_modules=MODULES,
    install_requires=["Pillow>=9.1"],
    extras_require={
        "test": ["pytest"],
        "accel": ["Cython>=3.0"],
    },
    entry_points={
        "console_scripts": [
            "chipz-headless=headless_run:main",
            "chipz-disasm=disasm:main",
        ],
    },
    ext_modules=ext_modules,
)
