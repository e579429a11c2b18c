# assetry package
# Resolves short asset queries (agents, roles, contexts, tasks) to installed
# definitions, installing from the asset catalog on demand, and audits the
# catalog against its source repository.
#
# Subpackages:
#   - config: paths, settings and the installed-configuration store
#   - registry: versions, index model, catalog client and index cache
#   - runtime: scoring, lazy index loading, install, disambiguation, resolver
#   - validator: consistency validation of tags, published versions and index

__version__ = "0.4.0"
