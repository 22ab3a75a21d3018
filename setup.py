from setuptools import find_namespace_packages, setup


setup(
    name="autoluks",
    version="1.3.1",
    description="Configures automatic unlocking of LUKS volumes at boot using key files in the initramfs",
    author="desultory",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    package_data={
        "autoluks": ["*.toml"]
    },
    install_requires=['zenlib>=3.0.0'],
    extras_require={
        "test": ["pytest"]
    },
    entry_points={
        "console_scripts": [
            "autoluks = autoluks.main:main"
        ]
    }
)
