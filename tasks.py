import os
import re
import subprocess
import sys

from invoke import Collection, task


def query_yes_no(question, default="yes"):
    """Ask a yes/no question via input() and return answer.

    "question" is a string that is presented to the user.
    "default" is the presumed answer if the user just hits <Enter>.
        It must be "yes" (the default), "no" or None (meaning
        an answer is required of the user).

    The "answer" return value is True for "yes" or False for "no".
    """
    valid = {"yes": True, "y": True, "ye": True, "no": False, "n": False}

    if default is None:
        prompt = " [y/n] "
    elif default == "yes":
        prompt = " [Y/n] "
    elif default == "no":
        prompt = " [y/N] "
    else:
        raise ValueError("invalid default answer: '%s'" % default)

    while True:
        sys.stdout.write(question + prompt)
        choice = input().lower()

        if default is not None and choice == "":
            return valid[default]
        elif choice in valid:
            return valid[choice]
        else:
            sys.stdout.write("Please respond with 'yes' or 'no' (or 'y' or 'n').\n")


def get_version(c):
    """
    Get version from setuptools-scm, using the git tags of the repository.

    Raises RuntimeError if the version cannot be determined.
    """
    try:
        from setuptools_scm import get_version as scm_get_version

        return scm_get_version(
            root=os.path.dirname(__file__),
            version_scheme="guess-next-dev",
            local_scheme="no-local-version",
        )
    except Exception as e:
        print("ERROR: Unable to determine version from git tags.")
        print("Please ensure:")
        print("  1. setuptools-scm is installed (pip install setuptools-scm)")
        print("  2. You are in a git repository with at least one version tag")
        print("  3. Git tags follow the format 'v1.0.0' or similar")
        raise RuntimeError(f"Version determination failed: {e}")


def _git_output(args):
    try:
        return subprocess.check_output(
            ["git"] + args, text=True, stderr=subprocess.DEVNULL
        ).strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


###############################################################################
# Misc development tasks (change version, tag releases)
###############################################################################


@task
def set_version(c, version=None):
    """
    Generate lpd_algorithms/_version.py and update the version in pyproject.toml.

    Args:
        version: Optional manual version string (e.g., "1.0.1"). If not provided,
                 version is determined automatically from git tags using setuptools-scm.
    """
    if version:
        version_to_write = version
        print(f"Using manually specified version: {version_to_write}")
    else:
        version_to_write = get_version(c)
        print(f"Using version {version_to_write} from git tags")

    git_sha = _git_output(["rev-parse", "--short=8", "HEAD"])
    git_date = _git_output(["log", "-1", "--format=%ci"])

    version_file_path = "lpd_algorithms/_version.py"
    with open(version_file_path, "w") as f:
        f.write("# This file is auto-generated at build time\n")
        f.write("# Do not edit this file manually\n")
        f.write(f'__version__ = "{version_to_write}"\n')
        f.write("\n")
        f.write("# Git information captured at build time\n")
        f.write(f'__git_sha__ = "{git_sha}"\n')
        f.write(f'__git_date__ = "{git_date}"\n')

    print(
        f"Successfully generated _version.py with version {version_to_write}, git SHA {git_sha}"
    )

    pyproject_path = "pyproject.toml"
    with open(pyproject_path) as f:
        pyproject = f.read()
    pyproject = re.sub(
        r'^version = "[^"]*"',
        f'version = "{version_to_write}"',
        pyproject,
        count=1,
        flags=re.MULTILINE,
    )
    with open(pyproject_path, "w") as f:
        f.write(pyproject)
    print(f"Set version to {version_to_write} in {pyproject_path}")


@task()
def set_tag(c, version=None):
    """
    Create and push a git tag for the current version.

    Args:
        version: Optional manual version string (e.g., "1.0.1"). If not provided,
                 version is determined automatically from git tags using setuptools-scm.
    """
    if version:
        v = version
        print(f"Using manually specified version: {v}")
    else:
        v = get_version(c)
        print(f"Using version {v} from git tags")

    ret = subprocess.run(
        ["git", "diff-index", "HEAD", "--"], capture_output=True, text=True
    )
    if ret.stdout != "":
        ret = query_yes_no("Uncommitted changes exist in repository. Commit these?")
        if ret:
            ret = subprocess.run(
                ["git", "commit", "-m", "Updating version tags for v{}".format(v)]
            )
            ret.check_returncode()
        else:
            print("Changes not committed - VERSION TAG NOT SET")

    print("Tagging version {} and pushing tag to origin".format(v))
    ret = subprocess.run(
        ["git", "tag", "-l", "v{}".format(v)], capture_output=True, text=True
    )
    ret.check_returncode()
    if "v{}".format(v) in ret.stdout:
        # Try to delete this tag on remote in case it exists there
        ret = subprocess.run(["git", "push", "origin", "--delete", "v{}".format(v)])
        if ret.returncode == 0:
            print("Deleted tag v{} on origin".format(v))
    subprocess.check_call(
        ["git", "tag", "-f", "-a", "v{}".format(v), "-m", "Version {}".format(v)]
    )
    subprocess.check_call(["git", "push", "origin", "v{}".format(v)])


###############################################################################
# Options
###############################################################################

ns = Collection(set_version, set_tag)
