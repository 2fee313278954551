import frappe


DEFAULT_SETTINGS = {
	"creation_horizon_days": 7,
	"modification_cutoff_hours": 12,
}


def after_install() -> None:
	"""Fills EV Charging Settings with the default booking limits."""
	settings = frappe.get_single("EV Charging Settings")
	changed = False

	for fieldname, value in DEFAULT_SETTINGS.items():
		if not settings.get(fieldname):
			settings.set(fieldname, value)
			changed = True

	if changed:
		settings.flags.ignore_permissions = True
		settings.save()
		frappe.logger().info("EV Charging Settings initialised with default booking limits")


def before_tests() -> None:
	after_install()
	frappe.db.commit()
