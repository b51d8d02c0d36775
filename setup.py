"""Setup script for the AssignmentBot application."""

import os
from pathlib import Path

from setuptools import find_packages, setup
from setuptools.command.develop import develop
from setuptools.command.install import install


def post_install_setup():
    """Create the user configuration and data directories after installation."""
    try:
        config_dir = Path.home() / ".config" / "assignmentbot"
        data_dir = Path.home() / ".local" / "share" / "assignmentbot"

        for directory in [config_dir, data_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            if hasattr(os, "chmod"):
                os.chmod(directory, 0o700)

        if not (config_dir / "config.yaml").exists():
            print("\n" + "=" * 60)
            print("📚 AssignmentBot Installation Complete!")
            print("=" * 60)
            print(f"Configuration directory: {config_dir}")
            print(f"Data directory: {data_dir}")
            print("\n🔧 Next Steps:")
            print("1. Run 'assignmentbot set-url <ICS URL>' to register your calendar feed")
            print("2. Run 'assignmentbot list' to see upcoming deadlines")
            print("3. Run 'assignmentbot --help' to see all available commands")
            print("=" * 60)

    except Exception as e:
        print(f"Warning: Post-install setup failed: {e}")
        print("You may need to create configuration directories manually.")


class PostInstallCommand(install):
    """Custom install command with post-install setup."""

    def run(self):
        install.run(self)
        post_install_setup()


class PostDevelopCommand(develop):
    """Custom develop command with post-install setup."""

    def run(self):
        develop.run(self)
        post_install_setup()


readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Runtime requirements go to install_requires, test tooling to the dev extra
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="assignmentbot",
    version="1.0.0",
    description="Assignment deadline tracker fed by an ICS calendar export",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="AssignmentBot Team",
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: Office/Business :: Scheduling",
        "Topic :: Education",
        "Framework :: AsyncIO",
    ],
    keywords="ics icalendar assignments deadlines reminders async",
    entry_points={
        "console_scripts": [
            "assignmentbot=assignmentbot.__main__:main",
        ],
    },
    cmdclass={
        "install": PostInstallCommand,
        "develop": PostDevelopCommand,
    },
    zip_safe=False,
)
