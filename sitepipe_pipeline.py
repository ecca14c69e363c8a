# sitepipe_pipeline.py
# Build, slim down and publish the site:
#   sitepipe run deploy
from __future__ import annotations

from sitepipe import Pipeline
from sitepipe.tools import critical, ghpages, jekyll, uncss


def pipeline() -> Pipeline:
    p = Pipeline()

    p.register("build", [], jekyll.build("dist", env="production"),
               description="Jekyll production build into dist/")

    p.register("uncss", ["build"], uncss.prune(
        "dist/assets/main.css",
        html=["dist/**/*.html"],
        ignore=["/code/", "/pre/", "/^.token/"],
    ), description="Drop selectors no page uses")

    # mobile viewport, inlined into a copy of the home page
    p.register("critical", ["uncss"], critical.extract(
        "index.html",
        base="dist/",
        css=["dist/assets/main.css"],
        width=320,
        height=480,
        target="dist/foo.html",
    ), description="Inline above-the-fold CSS for 320x480")

    p.register("critical-desktop", ["uncss"], critical.extract(
        "index.html",
        base="dist/",
        css=["dist/assets/main.css"],
        width=1300,
        height=500,
        inline=False,
        target="dist/assets/critical-desktop.css",
    ), description="Critical CSS fragment for 1300x500")

    p.register("deploy", ["uncss"], ghpages.publish("dist"),
               description="Publish dist/ to gh-pages")

    return p
