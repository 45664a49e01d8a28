"""Tests for tsconfig/jsconfig alias resolution."""

import json
from pathlib import Path

from pagegraph_cli.aliases import AliasResolver, strip_json_comments


def test_strip_json_comments_keeps_strings():
    text = '{\n  // comment\n  "url": "http://x/*y*/", /* block */\n  "a": [1, 2,],\n}'
    assert json.loads(strip_json_comments(text)) == {"url": "http://x/*y*/", "a": [1, 2]}


class TestResolve:
    """Resolution through configured and default aliases."""

    def test_configured_alias(self, write_files):
        root = write_files({
            "tsconfig.json": json.dumps({"compilerOptions": {"paths": {"@/*": ["src/*"]}}}),
            "src/components/Foo.tsx": "export const Foo = () => null;",
        })
        resolver = AliasResolver(root)
        expected = (root / "src/components/Foo.tsx").resolve()
        assert resolver.resolve("@/components/Foo", root / "app/page.tsx") == expected
        assert resolver.resolve("@/components/Foo", root / "src/deep/nested/x.ts") == expected

    def test_missing_target(self, write_files):
        root = write_files({
            "tsconfig.json": json.dumps({"compilerOptions": {"paths": {"@/*": ["src/*"]}}}),
        })
        assert AliasResolver(root).resolve("@/components/Missing", root / "app/page.tsx") is None

    def test_index_file_probe(self, write_files):
        root = write_files({"src/ui/index.ts": "export * from './Button';"})
        found = AliasResolver(root).resolve("@/ui", root / "app/page.tsx")
        assert found == (root / "src/ui/index.ts").resolve()

    def test_relative_specifier(self, write_files):
        root = write_files({"src/lib/format.ts": "export const x = 1;"})
        resolver = AliasResolver(root)
        found = resolver.resolve("../lib/format", root.resolve() / "src/components/Card.tsx")
        assert found == (root / "src/lib/format.ts").resolve()

    def test_default_aliases_without_config(self, temp_dir: Path):
        resolver = AliasResolver(temp_dir)
        assert resolver.config_file is None
        assert set(resolver.alias_prefixes()) == {"@/", "~/"}

    def test_malformed_config_falls_back_to_defaults(self, write_files):
        root = write_files({
            "tsconfig.json": "{ this is not json",
            "src/hooks/useCart.ts": "export function useCart() {}",
        })
        resolver = AliasResolver(root)
        found = resolver.resolve("@/hooks/useCart", root / "app/page.tsx")
        assert found == (root / "src/hooks/useCart.ts").resolve()

    def test_jsconfig_with_base_url(self, write_files):
        root = write_files({
            "jsconfig.json": json.dumps({
                "compilerOptions": {"baseUrl": "src", "paths": {"#ui/*": ["components/*"]}},
            }),
            "src/components/Nav.jsx": "export default function Nav() {}",
        })
        resolver = AliasResolver(root)
        assert resolver.config_file == (root / "jsconfig.json").resolve()
        assert resolver.resolve("#ui/Nav", root / "src/App.jsx") == (root / "src/components/Nav.jsx").resolve()

    def test_external_package_is_unresolved(self, temp_dir: Path):
        assert AliasResolver(temp_dir).resolve("react", temp_dir / "app/page.tsx") is None


def test_resolvers_do_not_share_state(write_files, temp_dir: Path):
    """Each scan builds its own resolver; configuration is per instance."""
    first = AliasResolver(temp_dir)
    write_files({"tsconfig.json": json.dumps({"compilerOptions": {"paths": {"$lib/*": ["lib/*"]}}})})
    second = AliasResolver(temp_dir)
    assert "$lib/" not in first.alias_prefixes()
    assert "$lib/" in second.alias_prefixes()


def test_catch_all_path_is_not_a_prefix(write_files):
    root = write_files({
        "tsconfig.json": json.dumps({"compilerOptions": {"paths": {"*": ["src/*"]}}}),
        "src/lib/format.ts": "export const x = 1;",
    })
    resolver = AliasResolver(root)
    assert "" not in resolver.alias_prefixes()
    assert resolver.resolve("lib/format", root / "app/page.tsx") == (root / "src/lib/format.ts").resolve()
