"""Curated official Salesforce developer PDFs.

Outdated BuddyMedia, Radian6 and legacy Marketing Cloud guides are left out.
"""

from __future__ import annotations

OFFICIAL_PDFS: tuple[str, ...] = (
    # Core Platform / Apex
    "salesforce_apex_developer_guide.pdf",
    "salesforce_apex_reference_guide.pdf",
    "dbcom_apex_language_reference.pdf",
    "apex_api.pdf",
    "apex_workbook.pdf",
    # LWC & Lightning
    "lwc.pdf",
    "lightning.pdf",
    # REST / SOAP / Bulk APIs
    "api_rest.pdf",
    "api_meta.pdf",
    "api_tooling.pdf",
    "api_bulk_v2.pdf",
    "api_asynch.pdf",
    "api_action.pdf",
    "api_streaming.pdf",
    "api_console.pdf",
    "api_ui.pdf",
    "api_apex_rest.pdf",
    # Object Reference
    "object_reference.pdf",
    "objects.pdf",
    # Platform Events & Big Objects
    "platform_events.pdf",
    "big_objects_guide.pdf",
    "field_history_retention.pdf",
    # Packages / DevOps
    "pkg2_dev.pdf",
    "pkg1_dev.pdf",
    "devops_center_dev.pdf",
    "isv_pkg.pdf",
    # Industry Clouds
    "health_cloud_dev_guide.pdf",
    "life_sciences_dev_guide.pdf",
    "revenue_lifecycle_management_dev_guide.pdf",
    "fsc_dev_guide.pdf",
    "insurance_developer_guide.pdf",
    "nonprofit_cloud.pdf",
    "edu_cloud_dev_guide.pdf",
    "automotive_cloud.pdf",
    "mfg_api_devguide.pdf",
    "media_developer_guide.pdf",
    "netzero_cloud_dev_guide.pdf",
    "order_management_developer_guide.pdf",
    "channel_revenue_management.pdf",
    "loyalty_api.pdf",
    "retail_api.pdf",
    # CPQ / Revenue
    "cpq_developer_guide.pdf",
    "cpq_plugins.pdf",
    "clm_developer_guide.pdf",
    # Agentforce / AI
    "agentforce_it_service.pdf",
    "asl_dev_guide.pdf",
    # Integration
    "integration_patterns_and_practices.pdf",
    "integration_workbook.pdf",
    "realtime_reporting_and_integration_apis.pdf",
    "data_pipelines.pdf",
    # Mobile
    "mobile_sdk.pdf",
    "mobile_offline.pdf",
    # Experience Cloud
    "communities_dev.pdf",
    "exp_cloud_lwr.pdf",
    "embedded_services_web_dev_guide.pdf",
    # Field Service
    "field_service_dev.pdf",
    # Identity / Security
    "headless_identity_impl_guide.pdf",
    "restriction_rules.pdf",
    "record_locking_cheatsheet.pdf",
    "limits_limitations.pdf",
    # CRM Analytics
    "salesforce_analytics_rest_api.pdf",
    "bi_admin_guide_data_integration_guide.pdf",
    "bi_dev_guide_rest.pdf",
    "bi_dev_guide_saql.pdf",
    "bi_dev_guide_sql.pdf",
    # Misc reference
    "salesforce_app_limits_cheatsheet.pdf",
    "forcecom_workbook.pdf",
    "canvas_framework.pdf",
    "Lightning_Components_Cheatsheet.pdf",
    "formula_date_time_tipsheet.pdf",
)
