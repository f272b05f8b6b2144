"""Version detection reference data.

Static tables consulted during a scan. Nothing here is mutated at runtime;
every scan reads the same module-level objects.

- CORE_JS_PATHS / WP_CORE_FINGERPRINTS: SHA-256 digests of normalized core
  scripts and the release set sharing each digest
- PLUGIN_JS_PATTERNS: per-plugin script paths and header version regexes
- BUILTIN_PLUGINS / BUILTIN_THEMES: slugs probed on every remote scan
- KNOWN_PLUGIN_VENDORS: slug -> CPE vendor for well known plugins

Digests are produced by ``scripts/hash_core_js.py`` against unpacked
release archives. Files are frequently byte-identical across patch
releases, so a single digest routinely maps to several versions.
"""

import re
from dataclasses import dataclass
from typing import Dict, Pattern, Tuple


@dataclass(frozen=True)
class JsFingerprint:
    """Digest of one well-known core script and the releases producing it."""

    path: str
    hash: str
    versions: Tuple[str, ...]


@dataclass(frozen=True)
class PluginJsPattern:
    """Script locations and header patterns for one plugin (first match wins)."""

    plugin: str
    paths: Tuple[str, ...]
    version_patterns: Tuple[Pattern[str], ...]


# ============================================================================
# CORE SCRIPT FINGERPRINTS
# ============================================================================

CORE_JS_PATHS: Tuple[str, ...] = (
    '/wp-includes/js/jquery/jquery-migrate.min.js',
    '/wp-includes/js/wp-emoji-release.min.js',
    '/wp-includes/js/wp-embed.min.js',
    '/wp-includes/js/jquery/jquery.min.js',
)

# Populated from the output of scripts/hash_core_js.py. Each digest is the
# lowercase hex SHA-256 of the normalized script; fingerprint.build_hash_lookup
# rejects anything else. While empty, core fingerprinting relies on header
# comments alone.
WP_CORE_FINGERPRINTS: Tuple[JsFingerprint, ...] = ()


# ============================================================================
# PLUGIN SCRIPT PATTERNS
# ============================================================================

PLUGIN_JS_PATTERNS: Tuple[PluginJsPattern, ...] = (
    PluginJsPattern(
        'elementor',
        ('/wp-content/plugins/elementor/assets/js/frontend.min.js',
         '/wp-content/plugins/elementor/assets/js/frontend.js'),
        (re.compile(r'/\*!\s*elementor\s*-\s*v([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I),
         re.compile(r'ELEMENTOR_VERSION\s*[=:]\s*["\']([\d.]+)["\']', re.I)),
    ),
    PluginJsPattern(
        'woocommerce',
        ('/wp-content/plugins/woocommerce/assets/js/frontend/woocommerce.min.js',
         '/wp-content/plugins/woocommerce/assets/js/frontend/woocommerce.js',
         '/wp-content/plugins/woocommerce/assets/client/blocks/wc-settings.js'),
        (re.compile(r'/\*!\s*WooCommerce\s+v?([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I),
         re.compile(r'woocommerce_version[\'":\s]+([\d.]+)', re.I)),
    ),
    PluginJsPattern(
        'contact-form-7',
        ('/wp-content/plugins/contact-form-7/includes/js/scripts.js',
         '/wp-content/plugins/contact-form-7/includes/js/index.js'),
        (re.compile(r'/\*!\s*Contact\s+Form\s+7\s+v?([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I),
         re.compile(r'wpcf7\s*=\s*{[^}]*version[\'":\s]*([\d.]+)', re.I)),
    ),
    PluginJsPattern(
        'wordpress-seo',
        ('/wp-content/plugins/wordpress-seo/js/dist/addon-installation.js',
         '/wp-content/plugins/wordpress-seo/js/dist/analysis-worker.js'),
        (re.compile(r'/\*!\s*Yoast\s+SEO\s+v?([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I),
         re.compile(r'yoastVersion[\'":\s]*([\d.]+)', re.I)),
    ),
    PluginJsPattern(
        'jetpack',
        ('/wp-content/plugins/jetpack/_inc/build/photon/photon.min.js',
         '/wp-content/plugins/jetpack/_inc/build/jetpack.min.js'),
        (re.compile(r'/\*!\s*Jetpack\s+v?([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I),
         re.compile(r'JETPACK_VERSION[\'":\s]*([\d.]+)', re.I)),
    ),
    PluginJsPattern(
        'wpforms-lite',
        ('/wp-content/plugins/wpforms-lite/assets/js/wpforms.min.js',
         '/wp-content/plugins/wpforms-lite/assets/js/wpforms.js'),
        (re.compile(r'/\*!\s*WPForms\s+v?([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I)),
    ),
    PluginJsPattern(
        'wordfence',
        ('/wp-content/plugins/wordfence/js/wfglobal.js',
         '/wp-content/plugins/wordfence/js/wfscan.js'),
        (re.compile(r'wordfenceVersion[\'":\s]*([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I)),
    ),
    PluginJsPattern(
        'all-in-one-seo-pack',
        ('/wp-content/plugins/all-in-one-seo-pack/dist/Lite/assets/js/aioseo.js',),
        (re.compile(r'/\*!\s*All\s+in\s+One\s+SEO\s+v?([\d.]+)', re.I),
         re.compile(r'@version\s+([\d.]+)', re.I)),
    ),
)

# Tried for plugins without a declared pattern; {slug} is substituted
GENERIC_PLUGIN_JS_PATHS: Tuple[str, ...] = (
    '/wp-content/plugins/{slug}/assets/js/{slug}.min.js',
    '/wp-content/plugins/{slug}/assets/js/{slug}.js',
    '/wp-content/plugins/{slug}/js/{slug}.min.js',
    '/wp-content/plugins/{slug}/js/{slug}.js',
    '/wp-content/plugins/{slug}/public/js/{slug}-public.min.js',
)

GENERIC_JS_VERSION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r'/\*![^*]*v([\d.]+)'),
    re.compile(r'@version\s+([\d.]+)', re.I),
    re.compile(r'version[\'":\s]+([\d.]+)', re.I),
)

# Header comments in core scripts that leak a release number
CORE_JS_COMMENT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r'@version\s+([\d.]+)', re.I),
    re.compile(r'WordPress\s+v?([\d.]+)', re.I),
    re.compile(r'wp-version[\'":\s]+([\d.]+)', re.I),
)


# ============================================================================
# CANDIDATE SLUGS AND VENDORS
# ============================================================================

BUILTIN_PLUGINS: Tuple[str, ...] = (
    'contact-form-7',
    'elementor',
    'woocommerce',
    'jetpack',
    'akismet',
    'wordfence',
    'yoast-seo',
    'wordpress-seo',
    'wpforms-lite',
    'classic-editor',
    'really-simple-ssl',
    'all-in-one-seo-pack',
    'updraftplus',
    'wp-super-cache',
    'w3-total-cache',
    'litespeed-cache',
    'advanced-custom-fields',
    'redirection',
    'duplicate-post',
    'google-analytics-for-wordpress',
    'google-site-kit',
    'wp-mail-smtp',
    'all-in-one-wp-migration',
    'tablepress',
    'ninja-forms',
    'gravityforms',
    'wpcf7-recaptcha',
    'cookie-notice',
    'cookiebot',
    'wp-fastest-cache',
    'autoptimize',
)

BUILTIN_THEMES: Tuple[str, ...] = (
    'twentytwentyfive',
    'twentytwentyfour',
    'twentytwentythree',
    'twentytwentytwo',
    'twentytwentyone',
    'twentytwenty',
    'twentynineteen',
    'twentyseventeen',
    'twentysixteen',
    'twentyfifteen',
    'astra',
    'oceanwp',
    'generatepress',
    'neve',
    'hello-elementor',
)

KNOWN_PLUGIN_VENDORS: Dict[str, str] = {
    'contact-form-7': 'rocklobster',
    'elementor': 'elementor',
    'woocommerce': 'automattic',
    'jetpack': 'automattic',
    'akismet': 'automattic',
    'wordfence': 'wordfence',
    'yoast-seo': 'yoast',
    'wordpress-seo': 'yoast',
    'wpforms-lite': 'wpforms',
    'really-simple-ssl': 'really-simple-plugins',
    'all-in-one-seo-pack': 'aioseo',
    'updraftplus': 'updraftplus',
    'advanced-custom-fields': 'advancedcustomfields',
    'google-site-kit': 'google',
    'wp-mail-smtp': 'wpforms',
    'gravityforms': 'gravityforms',
}


def get_plugin_js_pattern(slug: str) -> PluginJsPattern | None:
    for pattern in PLUGIN_JS_PATTERNS:
        if pattern.plugin == slug:
            return pattern
    return None
