"""
compliance/catalog.py -- Static compliance standards catalog.

Standard -> Requirement -> check id. Check ids are leaf identifiers resolved
by whichever ComplianceChecker the monitor was built with; the catalog never
says how a check is performed.

Order is significant everywhere: standards are assessed in catalog order when
no explicit list is given, and checks within a requirement run in the order
listed here.
"""

from core.models import ComplianceRequirement, ComplianceStandard

STANDARDS: tuple[ComplianceStandard, ...] = (
    ComplianceStandard(
        id="PCI_DSS",
        name="Payment Card Industry Data Security Standard",
        version="4.0",
        description="Security standards for organizations handling credit card data",
        requirements=(
            ComplianceRequirement(
                id="PCI_1_1",
                title="Install and maintain network security controls",
                description="Firewalls and router configuration standards",
                category="Network Security",
                severity="HIGH",
                checks=("firewall_configured", "default_passwords_changed", "unnecessary_services_disabled"),
            ),
            ComplianceRequirement(
                id="PCI_2_1",
                title="Apply secure configurations to all system components",
                description="Configuration standards for all system components",
                category="System Configuration",
                severity="HIGH",
                checks=("secure_configurations_applied", "vendor_defaults_removed", "configuration_hardening"),
            ),
            ComplianceRequirement(
                id="PCI_3_1",
                title="Protect stored cardholder data",
                description="Data encryption and storage requirements",
                category="Data Protection",
                severity="CRITICAL",
                checks=("data_encryption_at_rest", "key_management", "cardholder_data_inventory"),
            ),
            ComplianceRequirement(
                id="PCI_4_1",
                title="Protect cardholder data with strong cryptography during transmission",
                description="Encryption requirements for data in transit",
                category="Data Transmission",
                severity="CRITICAL",
                checks=("data_encryption_in_transit", "tls_configuration", "wireless_encryption"),
            ),
            ComplianceRequirement(
                id="PCI_8_1",
                title="Identify users and authenticate access to system components",
                description="User identification and authentication requirements",
                category="Access Control",
                severity="HIGH",
                checks=("unique_user_ids", "strong_authentication", "multi_factor_authentication"),
            ),
        ),
    ),
    ComplianceStandard(
        id="GDPR",
        name="General Data Protection Regulation",
        version="2018",
        description="EU regulation for data protection and privacy",
        requirements=(
            ComplianceRequirement(
                id="GDPR_ART_25",
                title="Data protection by design and by default",
                description="Privacy by design implementation",
                category="Privacy Design",
                severity="HIGH",
                checks=("privacy_by_design", "data_minimization", "purpose_limitation"),
            ),
            ComplianceRequirement(
                id="GDPR_ART_32",
                title="Security of processing",
                description="Technical and organizational security measures",
                category="Data Security",
                severity="HIGH",
                checks=(
                    "encryption_pseudonymization",
                    "data_integrity_confidentiality",
                    "security_testing_assessment",
                ),
            ),
            ComplianceRequirement(
                id="GDPR_ART_33",
                title="Notification of personal data breach",
                description="Data breach notification requirements",
                category="Incident Response",
                severity="CRITICAL",
                checks=("breach_detection_capability", "notification_procedures", "breach_documentation"),
            ),
            ComplianceRequirement(
                id="GDPR_ART_35",
                title="Data protection impact assessment",
                description="DPIA requirements for high-risk processing",
                category="Risk Assessment",
                severity="MEDIUM",
                checks=("dpia_conducted", "risk_assessment_documented", "mitigation_measures_implemented"),
            ),
        ),
    ),
    ComplianceStandard(
        id="SOC2",
        name="Service Organization Control 2",
        version="Type II",
        description="Auditing standard for service organizations",
        requirements=(
            ComplianceRequirement(
                id="SOC2_SEC_1",
                title="Security - Logical and Physical Access Controls",
                description="Access control implementation and monitoring",
                category="Security",
                severity="HIGH",
                checks=("access_control_policies", "user_access_reviews", "privileged_access_management"),
            ),
            ComplianceRequirement(
                id="SOC2_SEC_2",
                title="Security - System Operations",
                description="System operation monitoring and management",
                category="Operations",
                severity="HIGH",
                checks=("system_monitoring", "incident_response_procedures", "change_management"),
            ),
            ComplianceRequirement(
                id="SOC2_AVAIL_1",
                title="Availability - System Availability",
                description="System availability monitoring and management",
                category="Availability",
                severity="MEDIUM",
                checks=("availability_monitoring", "backup_procedures", "disaster_recovery_planning"),
            ),
            ComplianceRequirement(
                id="SOC2_CONF_1",
                title="Confidentiality - Information Classification",
                description="Information classification and handling",
                category="Confidentiality",
                severity="HIGH",
                checks=("data_classification", "confidential_data_handling", "information_disposal"),
            ),
        ),
    ),
    ComplianceStandard(
        id="HIPAA",
        name="Health Insurance Portability and Accountability Act",
        version="2013",
        description="US healthcare data protection regulation",
        requirements=(
            ComplianceRequirement(
                id="HIPAA_164_312_A",
                title="Administrative Safeguards",
                description="Administrative procedures for PHI protection",
                category="Administrative",
                severity="HIGH",
                checks=("security_officer_assigned", "workforce_training", "information_access_management"),
            ),
            ComplianceRequirement(
                id="HIPAA_164_312_B",
                title="Physical Safeguards",
                description="Physical protection of PHI systems",
                category="Physical",
                severity="HIGH",
                checks=("facility_access_controls", "workstation_use_restrictions", "device_media_controls"),
            ),
            ComplianceRequirement(
                id="HIPAA_164_312_C",
                title="Technical Safeguards",
                description="Technical measures for PHI protection",
                category="Technical",
                severity="CRITICAL",
                checks=("access_control_unique_ids", "audit_controls", "integrity_transmission_security"),
            ),
        ),
    ),
)

STANDARDS_BY_ID: dict[str, ComplianceStandard] = {s.id: s for s in STANDARDS}


def get_standard(standard_id: str) -> ComplianceStandard | None:
    return STANDARDS_BY_ID.get(standard_id)
