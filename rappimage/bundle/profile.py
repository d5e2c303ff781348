import textwrap
from pathlib import Path
from typing import Sequence

from rappimage.config import BuildMode
from rappimage.utils.fs import write_text

DEFAULT_CRAN_MIRROR = "https://cloud.r-project.org"

BLOCKED_FUNCTIONS = ("install.packages", "update.packages", "remove.packages")


def render_rprofile(mode: BuildMode, packages: Sequence[str] = ()) -> str:
    """Render ``Rprofile.site`` for the given build mode.

    Both variants lock package management; they differ only in what the
    lock message (and the baked-in package vector) says.
    """

    header = textwrap.dedent(
        """\
        # Rprofile.site for R AppImage
        # Generated at build time and executed at R startup.

        local({{
            r <- getOption("repos")
            r["CRAN"] <- "{mirror}"
            options(repos = r)
        }})

        """
    ).format(mirror=DEFAULT_CRAN_MIRROR)

    if mode is BuildMode.MINIMAL:
        variant = textwrap.dedent(
            """\
            .AppImage.build <- "minimal"
            .AppImage.message <- paste(
                "Package installation is disabled in this R AppImage.",
                "This minimal build ships only the packages that come with R itself,",
                "and the bundle is read-only, so nothing can be added at runtime.",
                "Rebuild the AppImage in with-packages mode to bundle more packages.",
                sep = "\\n"
            )

            """
        )
    else:
        vector = ", ".join(f'"{name}"' for name in packages)
        variant = textwrap.dedent(
            """\
            .AppImage.build <- "with-packages"
            .AppImage.packages <- c({vector})
            .AppImage.message <- paste(
                "Package installation is disabled in this R AppImage.",
                "These packages were installed when the AppImage was built:",
                paste(" ", .AppImage.packages, collapse = "\\n"),
                "Rebuild the AppImage with a different package list to change them.",
                sep = "\\n"
            )

            """
        ).format(vector=vector)

    blocked = ", ".join(f'"{name}"' for name in BLOCKED_FUNCTIONS)
    footer = textwrap.dedent(
        """\
        .AppImage.blocked <- function(...) {{
            stop(.AppImage.message, call. = FALSE)
        }}

        .AppImage.lock <- function(...) {{
            targets <- list(asNamespace("utils"))
            if ("package:utils" %in% search()) {{
                targets <- c(targets, list(as.environment("package:utils")))
            }}
            for (env in targets) {{
                for (fn in c({blocked})) {{
                    unlockBinding(fn, env)
                    assign(fn, .AppImage.blocked, envir = env)
                    lockBinding(fn, env)
                }}
            }}
        }}

        if (isNamespaceLoaded("utils")) {{
            .AppImage.lock()
        }} else {{
            setHook(packageEvent("utils", "onLoad"), .AppImage.lock)
        }}

        show.available.packages <- function() {{
            pkgs <- sort(rownames(utils::installed.packages()))
            cat("Packages available in this R AppImage (", .AppImage.build, " build):\\n", sep = "")
            cat(paste(" ", pkgs), sep = "\\n")
            invisible(pkgs)
        }}

        if (interactive()) {{
            cat("R AppImage - Portable R Environment (", .AppImage.build, " build)\\n", sep = "")
            cat("Package installation is disabled; see show.available.packages().\\n\\n")
        }}
        """
    ).format(blocked=blocked)

    return header + variant + footer


def write_rprofile(path: Path, mode: BuildMode, packages: Sequence[str] = ()) -> Path:
    write_text(path, render_rprofile(mode, packages))
    return path
